"""
Repository layer public API.

Usage:
    from optical_shop.database.repositories import (
        PrescriptionsRepo, OrdersRepo, DomainError,
        TableSet, OPTICAL_TABLES, CONTACT_LENS_TABLES,
    )
"""

from .tables import TableSet, OPTICAL_TABLES, CONTACT_LENS_TABLES
from .errors import DomainError
from .prescriptions_repo import PrescriptionsRepo
from .orders_repo import OrdersRepo

__all__ = [
    "TableSet",
    "OPTICAL_TABLES",
    "CONTACT_LENS_TABLES",
    "DomainError",
    "PrescriptionsRepo",
    "OrdersRepo",
]
