"""Purchase-order service.

Provides the high-level API used by the routers: creating, editing and
deleting purchase orders, and running lifecycle transitions with persistence
and approval logging.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from dna.config import DNAConfig
from dna.logger import get_logger

from .exceptions import InvalidStateError, NotFoundError, WorkflowError
from .machine import Actor, LifecycleGuard, TransitionOutcome, utcnow
from .rules import get_required_threshold
from .states import PENDING_STATUSES, POAction, POStatus

logger = get_logger(__name__)

EDITABLE_FIELDS = ("title", "description", "amount", "vendor")


@dataclass(frozen=True)
class SLAStatus:
    """SLA position of a purchase order awaiting approval."""
    sla_hours: int
    due_at: Optional[datetime]
    breached: bool
    escalation_required: bool


class PurchaseOrderService:
    """
    High-level service for purchase orders.

    Handles:
    - Creating orders with generated PO numbers
    - Guarded lifecycle transitions with at-most-one-winner updates
    - Editing and deleting within the DNA rules
    - SLA tracking for pending orders

    The service flushes but never commits; callers own the transaction.
    """

    def __init__(self, db: Session, config: DNAConfig):
        """
        Initialize the service.

        Args:
            db: Database session
            config: DNA configuration in effect for this request
        """
        self.db = db
        self.config = config
        self.guard = LifecycleGuard(config)

    def get_user(self, user_id: UUID):
        from erp.db.models import User

        user = self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User", user_id)
        return user

    def get(self, po_id: UUID):
        from erp.db.models import PurchaseOrder

        po = self.db.get(PurchaseOrder, po_id)
        if not po:
            raise NotFoundError("PO", po_id)
        return po

    def list_orders(
        self,
        *,
        status: Optional[POStatus] = None,
        created_by_id: Optional[UUID] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> Tuple[List[Any], int]:
        """Return (page of purchase orders, total count), newest first."""
        from erp.db.models import PurchaseOrder

        query = self.db.query(PurchaseOrder)
        if status:
            query = query.filter(PurchaseOrder.status == status.value)
        if created_by_id:
            query = query.filter(PurchaseOrder.created_by_id == created_by_id)

        total = query.count()
        items = (
            query.order_by(PurchaseOrder.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return items, total

    def create(
        self,
        *,
        title: str,
        amount: float,
        created_by_id: UUID,
        description: Optional[str] = None,
        vendor: Optional[str] = None,
    ):
        """
        Create a DRAFT purchase order and log its creation.

        Raises:
            NotFoundError: If the creator does not exist
            ValueError: If the amount is negative
        """
        from erp.db.models import ApprovalLog, PurchaseOrder

        if amount < 0:
            raise ValueError("Amount must not be negative")
        creator = self.get_user(created_by_id)

        po = PurchaseOrder(
            po_number=self._next_po_number(),
            title=title,
            description=description,
            amount=float(amount),
            vendor=vendor,
            status=POStatus.DRAFT.value,
            created_by_id=creator.id,
        )
        self.db.add(po)
        self.db.flush()

        self.db.add(ApprovalLog(po_id=po.id, user_id=creator.id, action="Created PO"))
        self.db.flush()

        logger.info("Created %s (%s) for %s by %s", po.po_number, po.title, po.amount, creator.email)
        return po

    def update(self, po_id: UUID, changes: Dict[str, Any]):
        """
        Edit purchase-order fields in place.

        Only ``title``, ``description``, ``amount`` and ``vendor`` are
        editable; ``None`` values are ignored.

        Raises:
            NotFoundError: If the PO does not exist
            InvalidStateError: If the PO is APPROVED
        """
        po = self.get(po_id)
        self.guard.check_modify(po)

        for name in EDITABLE_FIELDS:
            value = changes.get(name)
            if value is None:
                continue
            if name == "amount":
                if value < 0:
                    raise ValueError("Amount must not be negative")
                value = float(value)
            setattr(po, name, value)

        po.updated_at = utcnow()
        self.db.flush()
        return po

    def delete(self, po_id: UUID) -> None:
        """
        Delete a purchase order together with its approval log.

        Raises:
            NotFoundError: If the PO does not exist
            InvalidStateError: If the PO is APPROVED
        """
        po = self.get(po_id)
        self.guard.check_delete(po)

        self.db.delete(po)
        self.db.flush()
        logger.info("Deleted %s", po.po_number)

    def transition(
        self,
        po_id: UUID,
        action: POAction,
        *,
        actor_id: UUID,
        comment: Optional[str] = None,
    ):
        """
        Perform a lifecycle action on a purchase order.

        The status change is written with a conditional update keyed on the
        status the guard evaluated, so of two concurrent requests only one
        can win; the other gets InvalidStateError with the current status.

        Args:
            po_id: ID of the purchase order
            action: Action to perform
            actor_id: ID of the user performing the action
            comment: Optional comment recorded in the approval log

        Returns:
            The updated purchase order

        Raises:
            NotFoundError: If the PO or the actor does not exist
            InvalidStateError: If the PO is not in a valid source status
            InsufficientRoleError: If the actor's role is too low for the amount
            PolicyViolationError: If a DNA policy forbids the action
        """
        po = self.get(po_id)
        user = self.get_user(actor_id)
        actor = Actor(id=user.id, role=user.role)

        try:
            outcome = self.guard.evaluate(po, action, actor, comment=comment)
        except WorkflowError as e:
            logger.warning("%s on %s by %s refused: %s", action.value, po.po_number, user.email, e)
            raise

        self._apply(po, outcome, actor)
        logger.info(
            "%s %s: %s -> %s by %s (%s)",
            po.po_number, action.value, outcome.from_status.value,
            outcome.to_status.value, user.email, user.role,
        )
        return po

    def submit(self, po_id: UUID, *, actor_id: UUID, comment: Optional[str] = None):
        return self.transition(po_id, POAction.SUBMIT, actor_id=actor_id, comment=comment)

    def approve(self, po_id: UUID, *, actor_id: UUID, comment: Optional[str] = None):
        return self.transition(po_id, POAction.APPROVE, actor_id=actor_id, comment=comment)

    def reject(self, po_id: UUID, *, actor_id: UUID, comment: Optional[str] = None):
        return self.transition(po_id, POAction.REJECT, actor_id=actor_id, comment=comment)

    def revise(self, po_id: UUID, *, actor_id: UUID, comment: Optional[str] = None):
        return self.transition(po_id, POAction.REVISE, actor_id=actor_id, comment=comment)

    def available_actions(self, po, actor_id: UUID) -> List[POAction]:
        user = self.get_user(actor_id)
        return self.guard.available_actions(po, Actor(id=user.id, role=user.role))

    def sla_status(self, po, now: Optional[datetime] = None) -> SLAStatus:
        """SLA hours for the PO amount and, while pending, the due time."""
        hours = get_required_threshold(po.amount, self.config).sla_hours
        if POStatus(po.status) not in PENDING_STATUSES or po.submitted_at is None:
            return SLAStatus(hours, None, False, False)

        due_at = po.submitted_at + timedelta(hours=hours)
        breached = (now or utcnow()) > due_at
        return SLAStatus(
            sla_hours=hours,
            due_at=due_at,
            breached=breached,
            escalation_required=breached and self.config.settings.auto_escalate_on_sla_breach,
        )

    def is_sla_breached(self, po, now: Optional[datetime] = None) -> bool:
        return self.sla_status(po, now).breached

    def list_overdue(self, now: Optional[datetime] = None) -> List[Tuple[Any, SLAStatus]]:
        """Pending purchase orders past their SLA due time, oldest submission first."""
        from erp.db.models import PurchaseOrder

        now = now or utcnow()
        pending = (
            self.db.query(PurchaseOrder)
            .filter(PurchaseOrder.status.in_([s.value for s in PENDING_STATUSES]))
            .order_by(PurchaseOrder.submitted_at.asc())
            .all()
        )
        overdue = []
        for po in pending:
            sla = self.sla_status(po, now)
            if sla.breached:
                overdue.append((po, sla))
        return overdue

    def _apply(self, po, outcome: TransitionOutcome, actor: Actor) -> None:
        from erp.db.models import ApprovalLog, PurchaseOrder

        values = {"status": outcome.to_status.value, "updated_at": utcnow(), **outcome.changes}
        updated = (
            self.db.query(PurchaseOrder)
            .filter(
                PurchaseOrder.id == po.id,
                PurchaseOrder.status == outcome.from_status.value,
            )
            .update(values, synchronize_session=False)
        )

        if updated != 1:
            self.db.refresh(po)
            logger.warning(
                "%s on %s lost a concurrent update: expected %s, found %s",
                outcome.action.value, po.po_number, outcome.from_status.value, po.status,
            )
            raise InvalidStateError(
                f"PO {po.po_number} is already {po.status}",
                POStatus(po.status),
                outcome.action.value,
            )

        outcome.apply(po)
        po.updated_at = values["updated_at"]

        self.db.add(ApprovalLog(
            po_id=po.id,
            user_id=actor.id,
            action=outcome.log_action,
            comment=outcome.comment,
        ))
        self.db.flush()

    def _next_po_number(self) -> str:
        """Next ``PO-<year>-<NNN>`` number for the current year."""
        from erp.db.models import PurchaseOrder

        prefix = f"PO-{utcnow().year}-"
        numbers = (
            self.db.query(PurchaseOrder.po_number)
            .filter(PurchaseOrder.po_number.like(f"{prefix}%"))
            .all()
        )
        sequence = max(
            (int(number[len(prefix):]) for (number,) in numbers if number[len(prefix):].isdigit()),
            default=0,
        )
        return f"{prefix}{sequence + 1:03d}"
