"""Translation of workflow errors to HTTP responses."""

from fastapi import HTTPException, status

from erp.core.approval.exceptions import (
    InsufficientRoleError,
    InvalidStateError,
    NotFoundError,
    PolicyViolationError,
    WorkflowError,
)

# Policies that describe a malformed request rather than a forbidden one
BAD_REQUEST_POLICIES = {"require_comment_on_reject"}


def http_error(error: WorkflowError) -> HTTPException:
    """Map a workflow error to the HTTPException the routers raise."""
    if isinstance(error, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, InvalidStateError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(error, InsufficientRoleError):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(error, PolicyViolationError):
        if error.policy in BAD_REQUEST_POLICIES:
            code = status.HTTP_400_BAD_REQUEST
        else:
            code = status.HTTP_403_FORBIDDEN
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(error))
