"""Blueprint & error handler registration, called from startup."""
from __future__ import annotations

from typing import Any

from .admin import register_admin_api
from .api_helpers import register_error_handlers
from .books import register_books_api
from .customers import register_customers_api
from .health import register_health
from .menus import register_menus_api
from .orders import register_orders_api
from .printers import register_printers_api
from .shipping import register_shipping_api
from .uploads import register_uploads_api


def register_all(app: Any) -> None:
    register_error_handlers(app)
    register_health(app)
    register_books_api(app)
    register_customers_api(app)
    register_orders_api(app)
    register_shipping_api(app)
    register_printers_api(app)
    register_menus_api(app)
    register_admin_api(app)
    register_uploads_api(app)


__all__ = ["register_all"]
