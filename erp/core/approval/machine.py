"""Purchase-order lifecycle guard.

Decides whether an action is permitted for a purchase order and, if it is,
which fields change. The guard performs no I/O: persisting the outcome and
appending the approval log entry is the caller's job (see ``service``).
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union
from uuid import UUID

from dna.config import DNAConfig
from dna.logger import get_logger
from dna.roles import Role, parse_role

from .exceptions import InsufficientRoleError, InvalidStateError, PolicyViolationError
from .rules import can_approve, get_required_threshold
from .states import (
    EDITABLE_STATUSES,
    TERMINAL_STATUSES,
    POAction,
    POStatus,
    TransitionRule,
    describe_sources,
    get_transition_rule,
)

logger = get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class Actor:
    """The user performing an action."""
    id: UUID
    role: Union[Role, str]


@dataclass(frozen=True)
class TransitionOutcome:
    """Result of a permitted transition: the status change and field updates."""
    action: POAction
    from_status: POStatus
    to_status: POStatus
    changes: Dict[str, Any] = field(default_factory=dict)
    log_action: str = ""
    comment: Optional[str] = None

    def apply(self, po) -> None:
        """Copy the status and field changes onto a purchase-order object."""
        po.status = self.to_status.value
        for name, value in self.changes.items():
            setattr(po, name, value)


class LifecycleGuard:
    """
    Guards purchase-order transitions against the DNA rules.

    For each action the checks run in order:
    - source status (InvalidStateError)
    - approver role rank for the PO amount (InsufficientRoleError)
    - DNA policy flags (PolicyViolationError)

    ``po`` arguments may be any object with ``status``, ``amount`` and
    ``created_by_id`` attributes, such as the ORM model.
    """

    def __init__(self, config: DNAConfig):
        self.config = config

    def evaluate(
        self,
        po,
        action: POAction,
        actor: Actor,
        *,
        comment: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> TransitionOutcome:
        """
        Check an action and compute its effect.

        Args:
            po: Current purchase-order snapshot
            action: Requested action
            actor: User performing the action
            comment: Optional comment (required to reject when the DNA says so)
            now: Timestamp to record; defaults to the current UTC time

        Returns:
            The outcome to persist

        Raises:
            InvalidStateError: If the PO is not in a source status for the action
            InsufficientRoleError: If the actor cannot decide on this amount
            PolicyViolationError: If a DNA setting forbids the action
        """
        rule = self._check(po, action, actor, comment)
        now = now or utcnow()
        comment = comment.strip() if comment and comment.strip() else None

        if action == POAction.SUBMIT:
            changes = {"submitted_at": now}
        elif action in (POAction.APPROVE, POAction.REJECT):
            changes = {"approved_by_id": actor.id, "resolved_at": now}
        else:
            changes = {"approved_by_id": None, "resolved_at": None}

        return TransitionOutcome(
            action=action,
            from_status=rule.from_status,
            to_status=rule.to_status,
            changes=changes,
            log_action=rule.log_message,
            comment=comment,
        )

    def can_perform(self, po, action: POAction, actor: Actor, comment: Optional[str] = None) -> bool:
        """Check whether an action would be permitted, without raising."""
        try:
            self._check(po, action, actor, comment)
        except (InvalidStateError, InsufficientRoleError, PolicyViolationError):
            return False
        return True

    def available_actions(self, po, actor: Actor) -> list[POAction]:
        """Actions the actor may take on the PO now.

        Reject is listed when only its comment is missing, since the comment is
        supplied with the request.
        """
        return [
            action for action in POAction
            if self.can_perform(po, action, actor, comment="-" if action == POAction.REJECT else None)
        ]

    def check_modify(self, po) -> None:
        """Raise InvalidStateError unless the PO's fields may be edited."""
        status = POStatus(po.status)
        if status not in EDITABLE_STATUSES:
            raise InvalidStateError(f"Cannot modify {status.value} PO", status)

    def check_delete(self, po) -> None:
        """Raise InvalidStateError if the PO may not be deleted."""
        status = POStatus(po.status)
        if status in TERMINAL_STATUSES:
            raise InvalidStateError(f"Cannot delete {status.value} PO", status)

    def _check(self, po, action: POAction, actor: Actor, comment: Optional[str]) -> TransitionRule:
        status = POStatus(po.status)
        rule = get_transition_rule(status, action)
        if rule is None:
            raise InvalidStateError(
                f"Only {describe_sources(action)} PO can be {_past_tense(action)}; "
                f"PO is {status.value}",
                status,
                action.value,
            )

        if rule.requires_approver_role:
            thresholds = self.config.approval_thresholds
            if not can_approve(actor.role, po.amount, thresholds):
                role = parse_role(actor.role)
                raise InsufficientRoleError(
                    actor_role=role.value if role else str(actor.role),
                    required_role=get_required_threshold(po.amount, self.config).role.value,
                    amount=po.amount,
                    action=action.value,
                )

        settings = self.config.settings
        if action == POAction.APPROVE and actor.id == po.created_by_id and not settings.self_approval:
            raise PolicyViolationError("self_approval", "Self-approval is not allowed per DNA rules")

        if action == POAction.REJECT and settings.require_comment_on_reject:
            if not comment or not comment.strip():
                raise PolicyViolationError(
                    "require_comment_on_reject",
                    "Comment is required when rejecting a PO (per DNA rules)",
                )

        if action == POAction.REVISE and not settings.allow_revision:
            raise PolicyViolationError("allow_revision", "Revision is not allowed per DNA rules")

        return rule


def _past_tense(action: POAction) -> str:
    return {
        POAction.SUBMIT: "submitted",
        POAction.APPROVE: "approved",
        POAction.REJECT: "rejected",
        POAction.REVISE: "revised",
    }[action]
