"""Database models — re-exports all models.

Import from here:  from printshop.models import Quote, QuoteItem, ...
Or from submodules: from printshop.models.quotes import Quote
"""

from .base import Base  # noqa: F401

# Auth & Users
from .auth import User  # noqa: F401

# Catalog & Pricelists
from .catalog import CatalogUnit, Pricelist, PricelistEntry  # noqa: F401

# Suppliers
from .suppliers import Supplier, SupplierJob, SupplierOffer  # noqa: F401

# Quotes
from .quotes import (  # noqa: F401
    Quote,
    QuoteItem,
    QuoteTransition,
    SupplierAssignment,
)

# System Config
from .config import SystemConfig  # noqa: F401
