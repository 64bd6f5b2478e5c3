"""
Pure edits on a ReviewData snapshot.

Every function returns a new ReviewData with exactly one thing changed, or the
very same object when the targeted KRA, goal or evidence does not exist.
Permission checks are not done here; see pms.services.review_workflow.
"""
from typing import Callable, Optional, get_args

from pms.schemas.review import (
    EvidenceFile,
    FieldEdit,
    GoalInReview,
    GoalProgressUpdate,
    GoalR1ValidationEdit,
    GoalR2ValidationEdit,
    GoalSelfAssessmentEdit,
    KRAInReview,
    KRAR1ReviewEdit,
    KRAR2ReviewEdit,
    KRASelfAssessmentEdit,
    ReviewData,
)


def _variants(edit_union) -> tuple:
    union = get_args(edit_union)[0]
    return get_args(union)


_ALLOWED = {
    "kra_self": _variants(KRASelfAssessmentEdit),
    "kra_r1": _variants(KRAR1ReviewEdit),
    "kra_r2": _variants(KRAR2ReviewEdit),
    "goal_self": _variants(GoalSelfAssessmentEdit),
    "goal_r1": _variants(GoalR1ValidationEdit),
    "goal_r2": _variants(GoalR2ValidationEdit),
}


def _check(edit: FieldEdit, block: str):
    if not isinstance(edit, _ALLOWED[block]):
        raise TypeError(f"{type(edit).__name__} is not a valid edit for {block}")


def _set(model, edit: FieldEdit):
    return model.model_copy(update={edit.attribute: edit.value})


def _replace_kra(
    review: ReviewData,
    kra_id: str,
    change: Callable[[KRAInReview], KRAInReview],
) -> ReviewData:
    kra = review.kra(kra_id)
    if kra is None:
        return review
    updated = change(kra)
    if updated is kra:
        return review
    return review.model_copy(
        update={"kras": [updated if k.id == kra_id else k for k in review.kras]}
    )


def _replace_goal(
    review: ReviewData,
    kra_id: str,
    goal_id: str,
    change: Callable[[GoalInReview], GoalInReview],
) -> ReviewData:
    def on_kra(kra: KRAInReview) -> KRAInReview:
        goal = kra.goal(goal_id)
        if goal is None:
            return kra
        updated = change(goal)
        if updated is goal:
            return kra
        return kra.model_copy(
            update={"related_goals": [updated if g.id == goal_id else g for g in kra.related_goals]}
        )

    return _replace_kra(review, kra_id, on_kra)


# --- KRA blocks ---
def update_kra_self_assessment(review: ReviewData, kra_id: str, edit: FieldEdit) -> ReviewData:
    _check(edit, "kra_self")
    return _replace_kra(
        review, kra_id,
        lambda kra: kra.model_copy(update={"self_assessment": _set(kra.self_assessment, edit)}),
    )


def update_kra_r1_review(review: ReviewData, kra_id: str, edit: FieldEdit) -> ReviewData:
    _check(edit, "kra_r1")
    return _replace_kra(
        review, kra_id,
        lambda kra: kra.model_copy(update={"r1_review": _set(kra.r1_review, edit)}),
    )


def update_kra_r2_review(review: ReviewData, kra_id: str, edit: FieldEdit) -> ReviewData:
    _check(edit, "kra_r2")
    return _replace_kra(
        review, kra_id,
        lambda kra: kra.model_copy(update={"r2_review": _set(kra.r2_review, edit)}),
    )


# --- Goal blocks ---
def update_goal_self_assessment(review: ReviewData, kra_id: str, goal_id: str, edit: FieldEdit) -> ReviewData:
    _check(edit, "goal_self")
    return _replace_goal(
        review, kra_id, goal_id,
        lambda goal: goal.model_copy(update={"self_assessment": _set(goal.self_assessment, edit)}),
    )


def update_goal_r1_validation(review: ReviewData, kra_id: str, goal_id: str, edit: FieldEdit) -> ReviewData:
    _check(edit, "goal_r1")
    return _replace_goal(
        review, kra_id, goal_id,
        lambda goal: goal.model_copy(update={"r1_validation": _set(goal.r1_validation, edit)}),
    )


def update_goal_r2_validation(review: ReviewData, kra_id: str, goal_id: str, edit: FieldEdit) -> ReviewData:
    _check(edit, "goal_r2")
    return _replace_goal(
        review, kra_id, goal_id,
        lambda goal: goal.model_copy(update={"r2_validation": _set(goal.r2_validation, edit)}),
    )


def update_goal_progress(review: ReviewData, kra_id: str, goal_id: str, progress: GoalProgressUpdate) -> ReviewData:
    changes = {"current_progress": progress.current_progress}
    if progress.status is not None:
        changes["status"] = progress.status
    return _replace_goal(review, kra_id, goal_id, lambda goal: goal.model_copy(update=changes))


# --- Evidence ---
def find_evidence(
    review: ReviewData,
    kra_id: str,
    goal_id: Optional[str],
    evidence_id: str,
) -> Optional[EvidenceFile]:
    kra = review.kra(kra_id)
    if kra is None:
        return None
    if goal_id:
        goal = kra.goal(goal_id)
        files = goal.evidence if goal else []
    else:
        files = kra.self_assessment.evidence
    return next((f for f in files if f.id == evidence_id), None)


def add_evidence(
    review: ReviewData,
    kra_id: str,
    goal_id: Optional[str],
    file: EvidenceFile,
) -> ReviewData:
    """Append to the goal's list when goal_id is given, else to the KRA's."""
    if find_evidence(review, kra_id, goal_id, file.id) is not None:
        return review
    if goal_id:
        return _replace_goal(
            review, kra_id, goal_id,
            lambda goal: goal.model_copy(update={"evidence": [*goal.evidence, file]}),
        )
    return _replace_kra(
        review, kra_id,
        lambda kra: kra.model_copy(update={
            "self_assessment": kra.self_assessment.model_copy(
                update={"evidence": [*kra.self_assessment.evidence, file]}
            )
        }),
    )


def remove_evidence(
    review: ReviewData,
    kra_id: str,
    goal_id: Optional[str],
    evidence_id: str,
) -> ReviewData:
    if find_evidence(review, kra_id, goal_id, evidence_id) is None:
        return review
    if goal_id:
        return _replace_goal(
            review, kra_id, goal_id,
            lambda goal: goal.model_copy(
                update={"evidence": [f for f in goal.evidence if f.id != evidence_id]}
            ),
        )
    return _replace_kra(
        review, kra_id,
        lambda kra: kra.model_copy(update={
            "self_assessment": kra.self_assessment.model_copy(
                update={"evidence": [f for f in kra.self_assessment.evidence if f.id != evidence_id]}
            )
        }),
    )
