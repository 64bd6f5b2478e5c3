import uuid

from pms.core.exceptions import ValidationError
from pms.models.review import OverallStatus, ReviewStage
from pms.schemas.review import GoalInReview, KRAInReview, ReviewCreate, ReviewData


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def _build(data: ReviewCreate) -> ReviewData:
    kras = []
    for template in data.kras:
        goals = [
            GoalInReview(
                id=goal.id or _new_id("goal"),
                title=goal.title,
                description=goal.description,
                target_value=goal.target_value,
            )
            for goal in template.goals
        ]
        kras.append(KRAInReview(
            id=template.id or _new_id("kra"),
            name=template.name,
            description=template.description,
            weightage=template.weightage,
            category=template.category,
            related_goals=goals,
        ))

    return ReviewData(
        id=data.id or _new_id("review"),
        employee_id=data.employee_id,
        employee_name=data.employee_name,
        review_cycle=data.review_cycle,
        review_period=data.review_period,
        current_stage=ReviewStage.SELF,
        overall_status=OverallStatus.DRAFT,
        kras=kras,
    )


def new_review(data: ReviewCreate) -> ReviewData:
    """
    A fresh review at the start of a cycle: self stage, draft status, every
    assessment empty. Missing KRA/goal ids are generated.
    """
    total_weightage = sum(k.weightage for k in data.kras)
    if total_weightage > 100:
        raise ValidationError(
            f"KRA weightages add up to {total_weightage}%, the maximum is 100%"
        )
    try:
        return _build(data)
    except ValueError as e:
        # duplicate KRA/goal ids supplied by the caller
        raise ValidationError("Invalid review", messages=[str(e)])
