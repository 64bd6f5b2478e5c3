from sqlalchemy import Column, String, Date, DateTime, JSON, Index
from sqlalchemy.sql import func
from pms.database import Base
import enum


class ReviewStage(str, enum.Enum):
    """Workflow stages, in the only order a review may move through them."""
    SELF = "self"
    R1 = "r1"
    R2 = "r2"
    HR = "hr"
    COMPLETED = "completed"


class OverallStatus(str, enum.Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    IN_REVIEW = "in_review"
    APPROVED = "approved"


class GoalStatus(str, enum.Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    ACHIEVED = "achieved"
    EXCEEDED = "exceeded"


class AchievementLevel(str, enum.Enum):
    NOT_ACHIEVED = "not_achieved"
    PARTIAL = "partial"
    ACHIEVED = "achieved"
    EXCEEDED = "exceeded"


class PerformanceZone(str, enum.Enum):
    GREEN = "GREEN"
    YELLOW = "YELLOW"
    RED = "RED"


class PerformanceReview(Base):
    __tablename__ = "performance_reviews"

    id = Column(String, primary_key=True, index=True)
    employee_id = Column(String, index=True, nullable=False)
    employee_name = Column(String, nullable=False)
    review_cycle = Column(String, index=True, nullable=False)
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    current_stage = Column(String, default=ReviewStage.SELF.value, nullable=False)  # enum value, SQLite friendly
    overall_status = Column(String, default=OverallStatus.DRAFT.value, nullable=False)
    kras = Column(JSON, nullable=False, default=list)  # serialized KRAInReview list (camelCase)
    last_saved = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        Index("ix_reviews_employee_cycle", "employee_id", "review_cycle"),
    )
