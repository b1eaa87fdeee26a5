"""Purchase-order approval workflow.

Implements the DNA approval rules, the lifecycle guard and the
purchase-order service.
"""

from .states import POStatus, POAction, VALID_TRANSITIONS
from .exceptions import (
    WorkflowError,
    NotFoundError,
    InvalidStateError,
    InsufficientRoleError,
    PolicyViolationError,
)
from .rules import resolve, can_approve, get_required_threshold, get_sla_hours
from .machine import Actor, LifecycleGuard, TransitionOutcome
from .service import PurchaseOrderService, SLAStatus

__all__ = [
    "POStatus",
    "POAction",
    "VALID_TRANSITIONS",
    "WorkflowError",
    "NotFoundError",
    "InvalidStateError",
    "InsufficientRoleError",
    "PolicyViolationError",
    "resolve",
    "can_approve",
    "get_required_threshold",
    "get_sla_hours",
    "Actor",
    "LifecycleGuard",
    "TransitionOutcome",
    "PurchaseOrderService",
    "SLAStatus",
]
