"""
Stage & permission rules for the review workflow.

Who may touch a review depends on two things only: the stage the review is in
and the role of the acting user. Each assessment section additionally belongs
to exactly one stage and is frozen outside it.
"""
import enum
import logging
from typing import Optional

from pms.core.exceptions import PermissionDeniedError, ReviewLockedError
from pms.models.review import ReviewStage
from pms.models.user import UserRole
from pms.schemas.auth import ReviewerContext
from pms.schemas.review import ReviewData

logger = logging.getLogger(__name__)

STAGE_ORDER = [
    ReviewStage.SELF,
    ReviewStage.R1,
    ReviewStage.R2,
    ReviewStage.HR,
    ReviewStage.COMPLETED,
]


class Section(str, enum.Enum):
    SELF = "self"
    R1 = "r1"
    R2 = "r2"


SECTION_STAGE = {
    Section.SELF: ReviewStage.SELF,
    Section.R1: ReviewStage.R1,
    Section.R2: ReviewStage.R2,
}

FINALIZER_ROLES = (UserRole.HR, UserRole.ADMIN)


def stage_index(stage: ReviewStage) -> int:
    return STAGE_ORDER.index(ReviewStage(stage))


def next_stage(stage: ReviewStage) -> ReviewStage:
    """The stage after `stage`. A completed review has no successor."""
    idx = stage_index(stage)
    if idx == len(STAGE_ORDER) - 1:
        raise ReviewLockedError()
    return STAGE_ORDER[idx + 1]


def can_edit(
    role: UserRole,
    current_stage: ReviewStage,
    read_only: bool = False,
    user_id: Optional[str] = None,
    employee_id: Optional[str] = None,
) -> bool:
    if read_only:
        return False
    if current_stage == ReviewStage.SELF:
        return role == UserRole.EMPLOYEE or (user_id is not None and user_id == employee_id)
    if current_stage == ReviewStage.R1:
        return role in (UserRole.TEAMLEAD, UserRole.MANAGER)
    if current_stage == ReviewStage.R2:
        return role == UserRole.MANAGER
    return False


def can_edit_section(
    actor: ReviewerContext,
    review: ReviewData,
    section: Section,
    read_only: bool = False,
) -> bool:
    if review.current_stage != SECTION_STAGE[section]:
        return False
    return can_edit(
        actor.role,
        review.current_stage,
        read_only=read_only,
        user_id=actor.user_id,
        employee_id=review.employee_id,
    )


def ensure_can_edit(actor: ReviewerContext, review: ReviewData, section: Section):
    if review.is_locked:
        raise ReviewLockedError()
    if not can_edit_section(actor, review, section):
        raise PermissionDeniedError(
            f"{actor.role.value} cannot edit the {section.value} section "
            f"while the review is in the {review.current_stage.value} stage",
            details={"stage": review.current_stage.value, "section": section.value},
        )


def can_submit(actor: ReviewerContext, review: ReviewData) -> bool:
    """Who may close the current stage and hand the review on."""
    if review.current_stage == ReviewStage.HR:
        return actor.role in FINALIZER_ROLES
    return can_edit(
        actor.role,
        review.current_stage,
        user_id=actor.user_id,
        employee_id=review.employee_id,
    )


def ensure_can_submit(actor: ReviewerContext, review: ReviewData):
    if review.is_locked:
        raise ReviewLockedError()
    if not can_submit(actor, review):
        raise PermissionDeniedError(
            f"{actor.role.value} cannot submit the review in the {review.current_stage.value} stage",
            details={"stage": review.current_stage.value},
        )
