"""Commerce models: customers, orders, shipping zones and printers."""
from __future__ import annotations

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Integer, String, Text

from .base import Base, iso, utcnow

ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")
PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded")


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String(64), primary_key=True)
    first_name = Column(String(120), nullable=False)
    last_name = Column(String(120), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    phone = Column(String(64), nullable=True)
    address = Column(JSON, nullable=True)
    total_spent = Column(Float, nullable=False, default=0.0)
    order_count = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "totalSpent": self.total_spent,
            "orderCount": self.order_count,
            "notes": self.notes,
            "createdAt": iso(self.created_at),
        }


class Order(Base):
    """Customer order.

    `items` and `logs` are JSON arrays; callers must assign new lists
    rather than mutate in place so the ORM notices the change.
    """

    __tablename__ = "orders"

    id = Column(String(32), primary_key=True)
    customer_id = Column(String(64), ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True)
    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=False, index=True)
    status = Column(String(16), nullable=False, default="pending")
    payment_status = Column(String(16), nullable=False, default="pending")
    items = Column(JSON, nullable=False, default=list)
    total_amount = Column(Float, nullable=False, default=0.0)
    shipping_address = Column(JSON, nullable=True)
    tracking_number = Column(String(120), nullable=True)
    logs = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "customerId": self.customer_id,
            "customerName": self.customer_name,
            "customerEmail": self.customer_email,
            "status": self.status,
            "paymentStatus": self.payment_status,
            "items": list(self.items or []),
            "totalAmount": self.total_amount,
            "shippingAddress": self.shipping_address,
            "trackingNumber": self.tracking_number,
            "logs": list(self.logs or []),
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }

    def __repr__(self) -> str:  # pragma: no cover
        return "<Order id={0} status={1} email={2}>".format(self.id, self.status, self.customer_email)


class OrderSequence(Base):
    """Single-row counter backing ORD-YY-NNNNNNN identifiers."""

    __tablename__ = "order_sequence"

    id = Column(Integer, primary_key=True)
    last_value = Column(Integer, nullable=False, default=0)


class ShippingZone(Base):
    __tablename__ = "shipping_zones"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    countries = Column(JSON, nullable=False, default=list)
    methods = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "countries": list(self.countries or []),
            "methods": list(self.methods or []),
            "createdAt": iso(self.created_at),
        }


class Printer(Base):
    __tablename__ = "printers"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    contact_email = Column(String(255), nullable=True)
    country_codes = Column(JSON, nullable=False, default=list)
    production_delay_days = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contactEmail": self.contact_email,
            "countryCodes": list(self.country_codes or []),
            "productionDelayDays": self.production_delay_days,
            "createdAt": iso(self.created_at),
        }


__all__ = [
    "ORDER_STATUSES",
    "PAYMENT_STATUSES",
    "Customer",
    "Order",
    "OrderSequence",
    "ShippingZone",
    "Printer",
]
