from typing import List, Literal

from pms.models.review import PerformanceZone, ReviewStage
from pms.schemas.review import ReviewModel

ReviewerStatus = Literal["submitted", "draft", "pending"]


class ReviewerCell(ReviewModel):
    rating: int
    comments: str
    status: ReviewerStatus
    can_edit: bool


class ScoreRow(ReviewModel):
    kra_id: str
    kra_name: str
    weightage: int
    self_review: ReviewerCell
    r1_review: ReviewerCell
    r2_review: ReviewerCell
    final_score: float
    evidence_count: int
    attachment_count: int


class Scorecard(ReviewModel):
    review_id: str
    current_stage: ReviewStage
    rows: List[ScoreRow]
    overall_score: float
    zone: PerformanceZone
