from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from pms.core.exceptions import NotFoundError
from pms.dependencies import get_evidence_service, get_repository
from pms.routers.auth_deps import ensure_can_view, get_current_actor
from pms.schemas.auth import ReviewerContext
from pms.services.evidence import EvidenceService
from pms.services.review_repository import SqlReviewRepository

router = APIRouter(prefix="/evidence", tags=["evidence"])


@router.get("/{evidence_id}")
def download_evidence(
    evidence_id: str,
    actor: ReviewerContext = Depends(get_current_actor),
    evidence: EvidenceService = Depends(get_evidence_service),
    repository: SqlReviewRepository = Depends(get_repository),
):
    """Stream a stored file to anyone allowed to view the review it belongs to."""
    path, metadata = evidence.open(evidence_id)
    review_id = metadata.get("reviewId")
    if not review_id:
        raise NotFoundError(f"Evidence {evidence_id} not found")
    ensure_can_view(actor, repository.get(review_id))
    return FileResponse(
        path,
        media_type=metadata.get("mimeType", "application/octet-stream"),
        filename=metadata.get("name", evidence_id),
    )
