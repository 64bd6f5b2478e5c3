"""
Service wiring for request handlers.
"""
from fastapi import Depends
from sqlalchemy.orm import Session

from pms.core.config import settings
from pms.database import get_db
from pms.routers.auth_deps import ensure_can_view, get_current_actor
from pms.schemas.auth import ReviewerContext
from pms.services.audit import AuditService
from pms.services.evidence import EvidenceService
from pms.services.evidence_storage import LocalEvidenceStorage
from pms.services.review_repository import SqlReviewRepository
from pms.services.review_workflow import ReviewWorkflow


def get_evidence_service() -> EvidenceService:
    return EvidenceService(LocalEvidenceStorage(settings.evidence_dir), settings)


def get_repository(db: Session = Depends(get_db)) -> SqlReviewRepository:
    return SqlReviewRepository(db)


def get_audit_service(db: Session = Depends(get_db)) -> AuditService:
    return AuditService(db)


def get_workflow(
    review_id: str,
    actor: ReviewerContext = Depends(get_current_actor),
    repository: SqlReviewRepository = Depends(get_repository),
    evidence: EvidenceService = Depends(get_evidence_service),
    audit: AuditService = Depends(get_audit_service),
) -> ReviewWorkflow:
    """Load the review named in the path and open an editing session on it."""
    review = repository.get(review_id)
    ensure_can_view(actor, review)
    return ReviewWorkflow(review, actor, repository, evidence=evidence, audit=audit)


__all__ = [
    "get_db",
    "get_evidence_service",
    "get_repository",
    "get_audit_service",
    "get_workflow",
]
