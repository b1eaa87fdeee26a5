"""Errors raised by the purchase-order approval workflow."""

from typing import Optional


class WorkflowError(Exception):
    """Base class for purchase-order workflow errors."""


class NotFoundError(WorkflowError):
    """Raised when a referenced purchase order or user does not exist."""

    def __init__(self, kind: str, identifier):
        super().__init__(f"{kind} {identifier} not found")
        self.kind = kind
        self.identifier = identifier


class InvalidStateError(WorkflowError):
    """Raised when an action is requested from the wrong source status."""

    def __init__(self, message: str, current_status, action: Optional[str] = None):
        super().__init__(message)
        self.current_status = current_status
        self.action = action


class InsufficientRoleError(WorkflowError):
    """Raised when the actor's role ranks below the role the amount requires."""

    def __init__(self, actor_role: str, required_role: str, amount: float, action: str = "approve"):
        super().__init__(
            f"User with role {actor_role} cannot {action} PO with amount {amount:g}. "
            f"Requires {required_role} or above."
        )
        self.actor_role = actor_role
        self.required_role = required_role
        self.amount = amount


class PolicyViolationError(WorkflowError):
    """Raised when a DNA policy setting forbids the action."""

    def __init__(self, policy: str, message: str):
        super().__init__(message)
        self.policy = policy
