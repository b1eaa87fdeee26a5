import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Uuid
from sqlalchemy.orm import relationship

from erp.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    role = Column(String(50), nullable=False, default="STAFF")  # dna.roles.Role value
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    created_orders = relationship(
        "PurchaseOrder", back_populates="created_by", foreign_keys="PurchaseOrder.created_by_id"
    )
    approval_logs = relationship("ApprovalLog", back_populates="user")

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"
