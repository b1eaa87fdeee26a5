"""Factory functions for creating test database records.

Each factory creates a model instance, adds it to the session, and flushes
so that database-generated fields (id, created_at, etc.) are populated.
All fields have sensible defaults but can be overridden via keyword arguments.

Usage::

    from tests.factories import create_purchase_order, create_user

    def test_something(db_session):
        staff = create_user(db_session, role="STAFF")
        po = create_purchase_order(db_session, created_by=staff, amount=750000)
        assert po.created_by.role == "STAFF"
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from erp.core.approval.states import POStatus
from erp.db.models import ApprovalLog, PurchaseOrder, User


_counter = 0


def _next_id() -> int:
    """Return a monotonically increasing integer for unique default values."""
    global _counter
    _counter += 1
    return _counter


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------


def create_user(
    session: Session,
    *,
    email: Optional[str] = None,
    name: Optional[str] = None,
    role: str = "STAFF",
) -> User:
    n = _next_id()
    user = User(
        email=email or f"user{n}@example.com",
        name=name or f"Test User {n}",
        role=role,
    )
    session.add(user)
    session.flush()
    return user


# ---------------------------------------------------------------------------
# Purchase order
# ---------------------------------------------------------------------------


def create_purchase_order(
    session: Session,
    *,
    created_by: Optional[User] = None,
    po_number: Optional[str] = None,
    title: Optional[str] = None,
    amount: float = 100000.0,
    vendor: Optional[str] = None,
    status: POStatus = POStatus.DRAFT,
    approved_by: Optional[User] = None,
    submitted_at: Optional[datetime] = None,
) -> PurchaseOrder:
    """Create a purchase order directly in ``status``, bypassing the guard."""
    n = _next_id()
    creator = created_by or create_user(session)
    po = PurchaseOrder(
        po_number=po_number or f"PO-TEST-{n:04d}",
        title=title or f"Test Order {n}",
        amount=amount,
        vendor=vendor,
        status=status.value,
        created_by_id=creator.id,
        approved_by_id=approved_by.id if approved_by else None,
        submitted_at=submitted_at,
    )
    session.add(po)
    session.flush()
    return po


def create_approval_log(
    session: Session,
    *,
    po: PurchaseOrder,
    user: User,
    action: str = "Created PO",
    comment: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> ApprovalLog:
    log = ApprovalLog(po_id=po.id, user_id=user.id, action=action, comment=comment)
    if created_at is not None:
        log.created_at = created_at
    session.add(log)
    session.flush()
    return log
