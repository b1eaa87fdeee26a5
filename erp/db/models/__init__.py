"""Database models for the DNA ERP service."""

from erp.db.models.user import User
from erp.db.models.purchase_order import PurchaseOrder, ApprovalLog

__all__ = [
    "User",
    "PurchaseOrder",
    "ApprovalLog",
]
