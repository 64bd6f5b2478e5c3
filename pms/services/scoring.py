"""
Weighted scoring for a review.

Each KRA blends the three ratings (self 20%, R1 40%, R2 40%) and scales the
blend by its weightage. A rating that has not been given yet counts as 0, so
a review mid-way through the workflow scores low until every reviewer is in.
Nothing here is cached; call it again after any change.
"""
from pms.models.review import PerformanceZone, ReviewStage
from pms.schemas.review import KRAInReview, ReviewData
from pms.schemas.scorecard import ReviewerCell, Scorecard, ScoreRow

SELF_WEIGHT = 0.2
R1_WEIGHT = 0.4
R2_WEIGHT = 0.4

GREEN_THRESHOLD = 8
YELLOW_THRESHOLD = 5


def kra_final_score(kra: KRAInReview) -> float:
    self_rating = kra.self_assessment.rating or 0
    r1_rating = kra.r1_review.rating or 0
    r2_rating = kra.r2_review.rating or 0
    blended = self_rating * SELF_WEIGHT + r1_rating * R1_WEIGHT + r2_rating * R2_WEIGHT
    return blended * (kra.weightage / 100)


def overall_score(review: ReviewData) -> float:
    return sum(kra_final_score(kra) for kra in review.kras)


def classify(score: float) -> PerformanceZone:
    if score >= GREEN_THRESHOLD:
        return PerformanceZone.GREEN
    if score >= YELLOW_THRESHOLD:
        return PerformanceZone.YELLOW
    return PerformanceZone.RED


def _cell(rating: int, comments: str, empty_status: str, editable: bool) -> ReviewerCell:
    return ReviewerCell(
        rating=rating,
        comments=comments,
        status="submitted" if rating > 0 else empty_status,
        can_edit=editable,
    )


def build_scorecard(review: ReviewData) -> Scorecard:
    """Per-KRA matrix rows plus the overall score and zone."""
    stage = review.current_stage
    rows = []
    for kra in review.kras:
        rows.append(ScoreRow(
            kra_id=kra.id,
            kra_name=kra.name,
            weightage=kra.weightage,
            self_review=_cell(kra.self_assessment.rating, kra.self_assessment.comments, "draft", stage == ReviewStage.SELF),
            r1_review=_cell(kra.r1_review.rating, kra.r1_review.comments, "pending", stage == ReviewStage.R1),
            r2_review=_cell(kra.r2_review.rating, kra.r2_review.comments, "pending", stage == ReviewStage.R2),
            final_score=kra_final_score(kra),
            evidence_count=len(kra.self_assessment.evidence),
            attachment_count=sum(len(goal.evidence) for goal in kra.related_goals),
        ))
    total = sum(row.final_score for row in rows)
    return Scorecard(
        review_id=review.id,
        current_stage=stage,
        rows=rows,
        overall_score=total,
        zone=classify(total),
    )
