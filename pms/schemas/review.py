"""
Review aggregate: KRAs, their goals, and the three reviewers' assessments.

All models are frozen. A change to a review always produces a new
ReviewData; see pms.services.review_mutations.
"""
from datetime import date, datetime
from typing import Annotated, Any, ClassVar, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from pms.core.exceptions import ValidationError
from pms.models.review import AchievementLevel, GoalStatus, OverallStatus, ReviewStage

Rating = Annotated[int, Field(ge=0, le=10)]


class ReviewModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class EvidenceFile(ReviewModel):
    id: str
    name: str
    size_label: str
    mime_type: str
    uploaded_at: datetime
    url: Optional[str] = None


# --- KRA-level assessments ---
class KRASelfAssessment(ReviewModel):
    rating: Rating = 0
    comments: str = ""
    evidence: List[EvidenceFile] = []


class R1Review(ReviewModel):
    rating: Rating = 0
    comments: str = ""
    validation_note: str = ""
    agrees: bool = False


class R2Review(ReviewModel):
    rating: Rating = 0
    comments: str = ""
    approval_note: str = ""
    final_approval: bool = False


# --- Goal-level assessments ---
class GoalSelfAssessment(ReviewModel):
    achievement_level: Optional[AchievementLevel] = None  # None = not set yet
    comments: str = ""
    challenges_faced: str = ""
    next_steps: str = ""


class GoalR1Validation(ReviewModel):
    agrees: bool = False
    comments: str = ""
    evidence_review: str = ""


class GoalR2Validation(ReviewModel):
    final_approval: bool = False
    comments: str = ""
    impact_assessment: str = ""


class GoalInReview(ReviewModel):
    id: str
    title: str
    description: str = ""
    target_value: str = ""
    current_progress: int = Field(0, ge=0, le=100)
    status: GoalStatus = GoalStatus.NOT_STARTED
    evidence: List[EvidenceFile] = []
    self_assessment: GoalSelfAssessment = Field(default_factory=GoalSelfAssessment)
    r1_validation: GoalR1Validation = Field(default_factory=GoalR1Validation)
    r2_validation: GoalR2Validation = Field(default_factory=GoalR2Validation)


class KRAInReview(ReviewModel):
    id: str
    name: str
    description: str = ""
    weightage: int = Field(..., ge=0, le=100)
    category: str = ""
    related_goals: List[GoalInReview] = []
    self_assessment: KRASelfAssessment = Field(default_factory=KRASelfAssessment)
    r1_review: R1Review = Field(default_factory=R1Review)
    r2_review: R2Review = Field(default_factory=R2Review)

    @model_validator(mode="after")
    def _goal_ids_unique(self):
        ids = [g.id for g in self.related_goals]
        if len(ids) != len(set(ids)):
            raise ValueError(f"KRA {self.id}: goal ids must be unique")
        return self

    def goal(self, goal_id: str) -> Optional[GoalInReview]:
        return next((g for g in self.related_goals if g.id == goal_id), None)


class ReviewPeriod(ReviewModel):
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def _ordered(self):
        if self.end_date < self.start_date:
            raise ValueError("reviewPeriod.endDate must not precede startDate")
        return self


class ReviewData(ReviewModel):
    id: str
    employee_id: str
    employee_name: str
    review_cycle: str
    review_period: ReviewPeriod
    current_stage: ReviewStage = ReviewStage.SELF
    kras: List[KRAInReview] = []
    overall_status: OverallStatus = OverallStatus.DRAFT
    last_saved: Optional[datetime] = None

    @model_validator(mode="after")
    def _kra_ids_unique(self):
        ids = [k.id for k in self.kras]
        if len(ids) != len(set(ids)):
            raise ValueError("KRA ids must be unique within a review")
        return self

    @property
    def is_locked(self) -> bool:
        return self.current_stage == ReviewStage.COMPLETED

    def kra(self, kra_id: str) -> Optional[KRAInReview]:
        return next((k for k in self.kras if k.id == kra_id), None)


# ============================================================================
# EDITS
# Each edit names exactly one attribute of one assessment block. The unions
# below are the complete set of edits a section accepts.
# ============================================================================
class FieldEdit(ReviewModel):
    attribute: ClassVar[str]


class RatingChanged(FieldEdit):
    attribute: ClassVar[str] = "rating"
    field: Literal["rating"] = "rating"
    value: Rating


class CommentsChanged(FieldEdit):
    attribute: ClassVar[str] = "comments"
    field: Literal["comments"] = "comments"
    value: str


class ValidationNoteChanged(FieldEdit):
    attribute: ClassVar[str] = "validation_note"
    field: Literal["validationNote"] = "validationNote"
    value: str


class ApprovalNoteChanged(FieldEdit):
    attribute: ClassVar[str] = "approval_note"
    field: Literal["approvalNote"] = "approvalNote"
    value: str


class AgreementChanged(FieldEdit):
    attribute: ClassVar[str] = "agrees"
    field: Literal["agrees"] = "agrees"
    value: bool


class FinalApprovalChanged(FieldEdit):
    attribute: ClassVar[str] = "final_approval"
    field: Literal["finalApproval"] = "finalApproval"
    value: bool


class AchievementLevelChanged(FieldEdit):
    attribute: ClassVar[str] = "achievement_level"
    field: Literal["achievementLevel"] = "achievementLevel"
    value: Optional[AchievementLevel]


class ChallengesFacedChanged(FieldEdit):
    attribute: ClassVar[str] = "challenges_faced"
    field: Literal["challengesFaced"] = "challengesFaced"
    value: str


class NextStepsChanged(FieldEdit):
    attribute: ClassVar[str] = "next_steps"
    field: Literal["nextSteps"] = "nextSteps"
    value: str


class EvidenceReviewChanged(FieldEdit):
    attribute: ClassVar[str] = "evidence_review"
    field: Literal["evidenceReview"] = "evidenceReview"
    value: str


class ImpactAssessmentChanged(FieldEdit):
    attribute: ClassVar[str] = "impact_assessment"
    field: Literal["impactAssessment"] = "impactAssessment"
    value: str


KRASelfAssessmentEdit = Annotated[
    Union[RatingChanged, CommentsChanged],
    Field(discriminator="field"),
]
KRAR1ReviewEdit = Annotated[
    Union[RatingChanged, CommentsChanged, ValidationNoteChanged, AgreementChanged],
    Field(discriminator="field"),
]
KRAR2ReviewEdit = Annotated[
    Union[RatingChanged, CommentsChanged, ApprovalNoteChanged, FinalApprovalChanged],
    Field(discriminator="field"),
]
GoalSelfAssessmentEdit = Annotated[
    Union[AchievementLevelChanged, CommentsChanged, ChallengesFacedChanged, NextStepsChanged],
    Field(discriminator="field"),
]
GoalR1ValidationEdit = Annotated[
    Union[AgreementChanged, CommentsChanged, EvidenceReviewChanged],
    Field(discriminator="field"),
]
GoalR2ValidationEdit = Annotated[
    Union[FinalApprovalChanged, CommentsChanged, ImpactAssessmentChanged],
    Field(discriminator="field"),
]


class GoalProgressUpdate(ReviewModel):
    current_progress: int = Field(..., ge=0, le=100)
    status: Optional[GoalStatus] = None


_EDIT_ADAPTERS = {}


def parse_edit(edit_type: Any, payload: Any) -> FieldEdit:
    """
    Validate a raw JSON payload against one of the edit unions above.
    Unknown or malformed fields raise ValidationError instead of being ignored.
    """
    adapter = _EDIT_ADAPTERS.get(edit_type)
    if adapter is None:
        adapter = _EDIT_ADAPTERS[edit_type] = TypeAdapter(edit_type)
    try:
        return adapter.validate_python(payload)
    except PydanticValidationError as e:
        messages = [
            f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}"
            for err in e.errors()
        ]
        raise ValidationError("Invalid edit", messages=messages)


# ============================================================================
# CREATION
# ============================================================================
class GoalTemplate(ReviewModel):
    id: Optional[str] = None
    title: str
    description: str = ""
    target_value: str = ""


class KRATemplate(ReviewModel):
    id: Optional[str] = None
    name: str
    description: str = ""
    weightage: int = Field(..., ge=0, le=100)
    category: str = ""
    goals: List[GoalTemplate] = []


class ReviewCreate(ReviewModel):
    id: Optional[str] = None
    employee_id: str
    employee_name: str
    review_cycle: str
    review_period: ReviewPeriod
    kras: List[KRATemplate] = Field(..., min_length=1)
