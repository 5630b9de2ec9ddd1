"""ORM models aggregate exports (catalog + commerce)."""
from .base import Base  # noqa: F401
from .catalog import Book, Menu, Setting  # noqa: F401
from .commerce import (  # noqa: F401
	ORDER_STATUSES,
	PAYMENT_STATUSES,
	Customer,
	Order,
	OrderSequence,
	ShippingZone,
	Printer,
)

__all__ = [
	"Base",
	"Book",
	"Menu",
	"Setting",
	"ORDER_STATUSES",
	"PAYMENT_STATUSES",
	"Customer",
	"Order",
	"OrderSequence",
	"ShippingZone",
	"Printer",
]
