"""nuagebook administration backend.

Flask JSON API behind the storefront admin console: catalog, customers,
orders, shipping rules, printer routing, wizard/content configuration and
the upload / rendering pipeline used for previews and fulfillment.
"""

__version__ = "0.4.0"

__all__ = [
    "__version__",
]
