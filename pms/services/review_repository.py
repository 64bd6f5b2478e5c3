"""
SQLAlchemy-backed persistence for reviews.

The workflow only depends on ReviewPersistence (save/submit); the extra
query methods here serve the HTTP layer.
"""
from abc import ABC, abstractmethod
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pms.core.exceptions import ExternalServiceError, NotFoundError, ReviewExistsError
from pms.models.review import PerformanceReview
from pms.schemas.review import ReviewData
from pms.services.base import BaseService
from pms.services.permissions import stage_index


class ReviewPersistence(ABC):
    @abstractmethod
    def save(self, review: ReviewData) -> None:
        """Persist the current draft. Safe to retry."""

    @abstractmethod
    def submit(self, review: ReviewData) -> None:
        """Persist a review that has just moved to its next stage."""


def _to_row(review: ReviewData, row: PerformanceReview) -> PerformanceReview:
    row.employee_id = review.employee_id
    row.employee_name = review.employee_name
    row.review_cycle = review.review_cycle
    row.period_start = review.review_period.start_date
    row.period_end = review.review_period.end_date
    row.current_stage = review.current_stage.value
    row.overall_status = review.overall_status.value
    row.kras = [kra.model_dump(mode="json", by_alias=True) for kra in review.kras]
    row.last_saved = review.last_saved
    return row


def _from_row(row: PerformanceReview) -> ReviewData:
    return ReviewData.model_validate({
        "id": row.id,
        "employeeId": row.employee_id,
        "employeeName": row.employee_name,
        "reviewCycle": row.review_cycle,
        "reviewPeriod": {"startDate": row.period_start, "endDate": row.period_end},
        "currentStage": row.current_stage,
        "overallStatus": row.overall_status,
        "kras": row.kras or [],
        "lastSaved": row.last_saved,
    })


class SqlReviewRepository(BaseService, ReviewPersistence):
    def __init__(self, db: Session):
        super().__init__(db)

    def get(self, review_id: str) -> ReviewData:
        row = self.db.get(PerformanceReview, review_id)
        if row is None:
            raise NotFoundError(f"Review {review_id} not found")
        return _from_row(row)

    def list_for_employee(self, employee_id: str) -> List[ReviewData]:
        rows = (
            self.db.query(PerformanceReview)
            .filter(PerformanceReview.employee_id == employee_id)
            .order_by(PerformanceReview.period_start.desc())
            .all()
        )
        return [_from_row(r) for r in rows]

    def ensure_absent(self, review_id: str):
        if self.db.get(PerformanceReview, review_id) is not None:
            raise ReviewExistsError(review_id)

    def create(self, review: ReviewData) -> ReviewData:
        self.ensure_absent(review.id)
        self._write(review, PerformanceReview(id=review.id))
        self.log_info(f"Review {review.id} created for employee {review.employee_id}")
        return review

    def save(self, review: ReviewData) -> None:
        row = self.db.get(PerformanceReview, review.id) or PerformanceReview(id=review.id)
        self._write(review, row)

    def submit(self, review: ReviewData) -> None:
        row = self.db.get(PerformanceReview, review.id)
        if row is not None and stage_index(review.current_stage) != stage_index(row.current_stage) + 1:
            self.db.rollback()
            raise ExternalServiceError(
                f"Review {review.id} is no longer in the expected stage",
                details={"stored_stage": row.current_stage, "requested_stage": review.current_stage.value},
            )
        self._write(review, row or PerformanceReview(id=review.id))
        self.log_info(f"Review {review.id} moved to stage {review.current_stage.value}")

    def _write(self, review: ReviewData, row: PerformanceReview):
        try:
            self.db.add(_to_row(review, row))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            self._logger.error(f"Failed to persist review {review.id}: {e}", exc_info=True)
            raise ExternalServiceError("Failed to save review. Please try again.", details={"review_id": review.id})
