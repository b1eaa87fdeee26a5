"""Purchase order database models.

Stores purchase orders and their append-only approval log.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Float, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship

from erp.db.base import Base


class PurchaseOrder(Base):
    """
    A purchase order moving through the approval workflow.

    ``status`` only changes through the lifecycle guard; ``approved_by_id``
    holds the approver or the rejecter of the current decision.
    """
    __tablename__ = "purchase_orders"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    po_number = Column(String(50), unique=True, nullable=False, index=True)

    # Order details
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    amount = Column(Float, nullable=False)
    vendor = Column(String(255), nullable=True)

    # Workflow state
    status = Column(String(50), nullable=False, default="DRAFT", index=True)

    # Actors
    created_by_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    approved_by_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Workflow timestamps
    submitted_at = Column(DateTime, nullable=True)
    resolved_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    created_by = relationship("User", foreign_keys=[created_by_id], back_populates="created_orders")
    approved_by = relationship("User", foreign_keys=[approved_by_id])
    logs = relationship(
        "ApprovalLog",
        back_populates="purchase_order",
        order_by="ApprovalLog.created_at",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<PurchaseOrder {self.po_number} [{self.status}]>"


class ApprovalLog(Base):
    """
    One entry of a purchase order's audit trail.

    Entries are written once per status change and never updated.
    """
    __tablename__ = "approval_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    po_id = Column(Uuid(as_uuid=True), ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)

    action = Column(String(100), nullable=False)
    comment = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    # Relationships
    purchase_order = relationship("PurchaseOrder", back_populates="logs")
    user = relationship("User", back_populates="approval_logs")

    def __repr__(self) -> str:
        return f"<ApprovalLog {self.action} on {self.po_id}>"
