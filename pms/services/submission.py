"""
Completeness checks that gate moving a review to its next stage.
"""
from datetime import datetime, timezone
from typing import List, Optional

from pms.core.exceptions import SubmissionIncompleteError
from pms.models.review import OverallStatus, ReviewStage
from pms.schemas.review import ReviewData
from pms.services.permissions import next_stage

# Status a review carries once it has entered the given stage.
STATUS_ON_ENTRY = {
    ReviewStage.R1: OverallStatus.SUBMITTED,
    ReviewStage.R2: OverallStatus.IN_REVIEW,
    ReviewStage.HR: OverallStatus.IN_REVIEW,
    ReviewStage.COMPLETED: OverallStatus.APPROVED,
}


def _blank(text: Optional[str]) -> bool:
    return not (text or "").strip()


def _self_stage_errors(review: ReviewData) -> List[str]:
    errors = []
    for i, kra in enumerate(review.kras, start=1):
        if not kra.self_assessment.rating:
            errors.append(f"KRA {i} ({kra.name}): Self-assessment rating is required")
        if _blank(kra.self_assessment.comments):
            errors.append(f"KRA {i} ({kra.name}): Self-assessment comments are required")
        for j, goal in enumerate(kra.related_goals, start=1):
            if goal.self_assessment.achievement_level is None:
                errors.append(f"KRA {i}, Goal {j} ({goal.title}): Achievement level is required")
            if _blank(goal.self_assessment.comments):
                errors.append(f"KRA {i}, Goal {j} ({goal.title}): Self-assessment comments are required")
    return errors


def _reviewer_stage_errors(review: ReviewData, label: str, block: str) -> List[str]:
    errors = []
    for i, kra in enumerate(review.kras, start=1):
        assessment = getattr(kra, block)
        if not assessment.rating:
            errors.append(f"KRA {i} ({kra.name}): {label} rating is required")
        if _blank(assessment.comments):
            errors.append(f"KRA {i} ({kra.name}): {label} comments are required")
    return errors


def validate_submission(review: ReviewData) -> List[str]:
    """
    Every missing field of the active stage, one message each, in KRA/goal order.
    An empty list means the stage can be submitted.
    """
    stage = review.current_stage
    if stage == ReviewStage.SELF:
        return _self_stage_errors(review)
    if stage == ReviewStage.R1:
        return _reviewer_stage_errors(review, "R1 review", "r1_review")
    if stage == ReviewStage.R2:
        return _reviewer_stage_errors(review, "R2 review", "r2_review")
    return []


def ensure_submittable(review: ReviewData):
    errors = validate_submission(review)
    if errors:
        raise SubmissionIncompleteError(errors)


def advance(review: ReviewData, now: Optional[datetime] = None) -> ReviewData:
    """The review moved exactly one stage forward, with its status updated."""
    target = next_stage(review.current_stage)
    return review.model_copy(update={
        "current_stage": target,
        "overall_status": STATUS_ON_ENTRY[target],
        "last_saved": now or datetime.now(timezone.utc),
    })
