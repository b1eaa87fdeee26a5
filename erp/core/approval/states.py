"""Purchase-order lifecycle states and transitions.

State Machine Diagram:

    ┌──────────┐  submit   ┌──────────────────┐  approve  ┌──────────┐
    │  DRAFT   │──────────►│ PENDING_APPROVAL │──────────►│ APPROVED │
    └──────────┘           └────────┬─────────┘           └──────────┘
         ▲                          │ reject
         │ revise             ┌─────▼─────┐
         └────────────────────│ REJECTED  │
                              └─────┬─────┘
                                    │ submit (resubmit without revising)
                                    └──────► PENDING_APPROVAL

APPROVED is terminal: no edits, no deletion. REJECTED is terminal unless the
DNA allows revision or the PO is resubmitted.
"""

from enum import Enum
from typing import Dict, NamedTuple, Optional, Set


class POStatus(str, Enum):
    """Status of a purchase order."""

    DRAFT = "DRAFT"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class POAction(str, Enum):
    """Actions that change a purchase order's status."""

    SUBMIT = "submit"    # DRAFT/REJECTED → PENDING_APPROVAL
    APPROVE = "approve"  # PENDING_APPROVAL → APPROVED
    REJECT = "reject"    # PENDING_APPROVAL → REJECTED
    REVISE = "revise"    # REJECTED → DRAFT


class TransitionRule(NamedTuple):
    """Defines a valid status transition."""
    from_status: POStatus
    to_status: POStatus
    action: POAction
    requires_approver_role: bool = False
    log_message: str = ""


TRANSITION_RULES: list[TransitionRule] = [
    TransitionRule(POStatus.DRAFT, POStatus.PENDING_APPROVAL, POAction.SUBMIT,
                   log_message="Submitted for approval"),
    TransitionRule(POStatus.REJECTED, POStatus.PENDING_APPROVAL, POAction.SUBMIT,
                   log_message="Submitted for approval"),
    TransitionRule(POStatus.PENDING_APPROVAL, POStatus.APPROVED, POAction.APPROVE,
                   requires_approver_role=True, log_message="Approved"),
    TransitionRule(POStatus.PENDING_APPROVAL, POStatus.REJECTED, POAction.REJECT,
                   requires_approver_role=True, log_message="Rejected"),
    TransitionRule(POStatus.REJECTED, POStatus.DRAFT, POAction.REVISE,
                   log_message="Revised - returned to draft"),
]

VALID_TRANSITIONS: Dict[POStatus, Set[POAction]] = {}
TRANSITION_TARGETS: Dict[tuple[POStatus, POAction], TransitionRule] = {}

for rule in TRANSITION_RULES:
    VALID_TRANSITIONS.setdefault(rule.from_status, set()).add(rule.action)
    TRANSITION_TARGETS[(rule.from_status, rule.action)] = rule

# Source statuses per action, for error messages
ALLOWED_SOURCES: Dict[POAction, Set[POStatus]] = {}
for rule in TRANSITION_RULES:
    ALLOWED_SOURCES.setdefault(rule.action, set()).add(rule.from_status)

# No edits and no deletion once reached
TERMINAL_STATUSES: Set[POStatus] = {POStatus.APPROVED}

# Statuses whose fields may be edited in place
EDITABLE_STATUSES: Set[POStatus] = {
    POStatus.DRAFT,
    POStatus.PENDING_APPROVAL,
    POStatus.REJECTED,
}

# Statuses awaiting an approver decision
PENDING_STATUSES: Set[POStatus] = {POStatus.PENDING_APPROVAL}


def can_transition(from_status: POStatus, action: POAction) -> bool:
    """Check if an action is valid from the given status."""
    return action in VALID_TRANSITIONS.get(from_status, set())


def get_transition_rule(from_status: POStatus, action: POAction) -> Optional[TransitionRule]:
    """Get the transition rule for a status/action combination."""
    return TRANSITION_TARGETS.get((from_status, action))


def get_target_status(from_status: POStatus, action: POAction) -> Optional[POStatus]:
    """Get the target status for a transition."""
    rule = get_transition_rule(from_status, action)
    return rule.to_status if rule else None


def describe_sources(action: POAction) -> str:
    """``"DRAFT or REJECTED"`` style list of statuses an action starts from."""
    sources = sorted(s.value for s in ALLOWED_SOURCES.get(action, set()))
    return " or ".join(sources)
