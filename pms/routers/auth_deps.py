"""
Acting-user dependencies.

Token issuance lives in the identity gateway in front of this service; it
forwards the caller's id and role as headers. Each request gets its own
ReviewerContext, passed explicitly to the workflow.
"""
import logging
from typing import Callable, List, Optional

from fastapi import Depends, Header

from pms.core.exceptions import AuthenticationError, PermissionDeniedError
from pms.models.user import UserRole
from pms.schemas.auth import ReviewerContext
from pms.schemas.review import ReviewData

logger = logging.getLogger(__name__)


def get_current_actor(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> ReviewerContext:
    if not x_user_id or not x_user_role:
        logger.warning("Authentication failed: missing X-User-Id or X-User-Role")
        raise AuthenticationError()
    try:
        role = UserRole(x_user_role.strip().upper())
    except ValueError:
        logger.warning(f"Authentication failed: unknown role {x_user_role!r}")
        raise AuthenticationError(f"Unknown role: {x_user_role}")
    return ReviewerContext(user_id=x_user_id.strip(), role=role)


def require_role(allowed_roles: List[UserRole]) -> Callable:
    """
    Dependency factory that checks if the actor has one of the allowed roles.

    Usage:
        @router.post("/reviews")
        def create(actor: ReviewerContext = Depends(require_role([UserRole.HR]))):
            ...
    """
    def role_checker(actor: ReviewerContext = Depends(get_current_actor)) -> ReviewerContext:
        if actor.role not in allowed_roles:
            raise PermissionDeniedError(
                f"Access denied. Required roles: {[r.value for r in allowed_roles]}"
            )
        return actor
    return role_checker


def require_hr():
    """Shorthand for requiring an HR role."""
    return require_role([UserRole.HR, UserRole.ADMIN])


def ensure_can_view(actor: ReviewerContext, review: ReviewData):
    """Employees see only their own reviews; reviewer and HR roles see all."""
    if actor.role == UserRole.EMPLOYEE and actor.user_id != review.employee_id:
        raise PermissionDeniedError("Access denied. You can only view your own reviews.")


def ensure_can_view_employee(actor: ReviewerContext, employee_id: str):
    if actor.role == UserRole.EMPLOYEE and actor.user_id != employee_id:
        raise PermissionDeniedError("Access denied. You can only view your own reviews.")
