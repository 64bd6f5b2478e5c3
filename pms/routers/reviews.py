from typing import Any, Callable, Dict, List, Optional
from datetime import datetime
import logging

from fastapi import APIRouter, Body, Depends, File, Form, Query, Request, UploadFile, status
from pydantic import BaseModel, ConfigDict

from pms.core.config import settings
from pms.core.limiter import limiter
from pms.models.user import UserRole
from pms.routers.auth_deps import ensure_can_view_employee, get_current_actor, require_hr
from pms.schemas.auth import ReviewerContext
from pms.schemas.evidence import EvidenceUpload
from pms.schemas.review import (
    EvidenceFile,
    GoalProgressUpdate,
    GoalR1ValidationEdit,
    GoalR2ValidationEdit,
    GoalSelfAssessmentEdit,
    KRAR1ReviewEdit,
    KRAR2ReviewEdit,
    KRASelfAssessmentEdit,
    ReviewCreate,
    ReviewData,
    parse_edit,
)
from pms.schemas.scorecard import Scorecard
from pms.services.audit import AuditService
from pms.services.review_repository import SqlReviewRepository
from pms.services.review_templates import new_review
from pms.services.review_workflow import ReviewWorkflow
from pms.services.scoring import build_scorecard
from pms.dependencies import get_audit_service, get_repository, get_workflow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["reviews"])


class EvidenceUploadResult(BaseModel):
    evidence: Optional[EvidenceFile] = None
    review: ReviewData


class AuditEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    action: str
    user_id: Optional[str]
    user_role: Optional[str]
    details: Optional[Dict[str, Any]]
    before_state: Optional[Dict[str, Any]]
    after_state: Optional[Dict[str, Any]]
    created_at: Optional[datetime]


def _apply_and_save(workflow: ReviewWorkflow, edit: Callable[[], ReviewData]) -> ReviewData:
    """Every accepted edit is persisted right away."""
    before = workflow.review
    edit()
    if workflow.review is not before:
        workflow.save()
    return workflow.review


# ============================================================================
# REVIEWS
# ============================================================================
@router.post("", response_model=ReviewData, status_code=status.HTTP_201_CREATED)
def create_review(
    data: ReviewCreate,
    actor: ReviewerContext = Depends(require_hr()),
    repository: SqlReviewRepository = Depends(get_repository),
    audit: AuditService = Depends(get_audit_service),
):
    """Open a review for an employee at the start of a cycle."""
    review = new_review(data)
    repository.ensure_absent(review.id)
    audit.log_action("review_created", review.id, actor, {"employee_id": review.employee_id, "cycle": review.review_cycle})
    return repository.create(review)


@router.get("", response_model=List[ReviewData])
def list_reviews(
    employee_id: str = Query(...),
    actor: ReviewerContext = Depends(get_current_actor),
    repository: SqlReviewRepository = Depends(get_repository),
):
    ensure_can_view_employee(actor, employee_id)
    return repository.list_for_employee(employee_id)


@router.get("/{review_id}", response_model=ReviewData)
def get_review(workflow: ReviewWorkflow = Depends(get_workflow)):
    return workflow.review


@router.get("/{review_id}/scorecard", response_model=Scorecard)
def get_scorecard(workflow: ReviewWorkflow = Depends(get_workflow)):
    return build_scorecard(workflow.review)


@router.get("/{review_id}/audit", response_model=List[AuditEntryResponse])
def get_audit_trail(
    review_id: str,
    workflow: ReviewWorkflow = Depends(get_workflow),
    audit: AuditService = Depends(get_audit_service),
):
    if workflow.actor.role == UserRole.EMPLOYEE:
        # employees see their review, not who touched it
        return []
    return audit.list_for_review(review_id)


@router.post("/{review_id}/save", response_model=ReviewData)
def save_review(workflow: ReviewWorkflow = Depends(get_workflow)):
    return workflow.save()


@router.post("/{review_id}/submit", response_model=ReviewData)
def submit_review(workflow: ReviewWorkflow = Depends(get_workflow)):
    return workflow.submit()


# ============================================================================
# KRA SECTIONS
# ============================================================================
@router.patch("/{review_id}/kras/{kra_id}/self-assessment", response_model=ReviewData)
def edit_kra_self_assessment(
    kra_id: str,
    payload: Dict[str, Any] = Body(...),
    workflow: ReviewWorkflow = Depends(get_workflow),
):
    edit = parse_edit(KRASelfAssessmentEdit, payload)
    return _apply_and_save(workflow, lambda: workflow.update_kra_self_assessment(kra_id, edit))


@router.patch("/{review_id}/kras/{kra_id}/r1-review", response_model=ReviewData)
def edit_kra_r1_review(
    kra_id: str,
    payload: Dict[str, Any] = Body(...),
    workflow: ReviewWorkflow = Depends(get_workflow),
):
    edit = parse_edit(KRAR1ReviewEdit, payload)
    return _apply_and_save(workflow, lambda: workflow.update_kra_r1_review(kra_id, edit))


@router.patch("/{review_id}/kras/{kra_id}/r2-review", response_model=ReviewData)
def edit_kra_r2_review(
    kra_id: str,
    payload: Dict[str, Any] = Body(...),
    workflow: ReviewWorkflow = Depends(get_workflow),
):
    edit = parse_edit(KRAR2ReviewEdit, payload)
    return _apply_and_save(workflow, lambda: workflow.update_kra_r2_review(kra_id, edit))


# ============================================================================
# GOAL SECTIONS
# ============================================================================
@router.patch("/{review_id}/kras/{kra_id}/goals/{goal_id}/self-assessment", response_model=ReviewData)
def edit_goal_self_assessment(
    kra_id: str,
    goal_id: str,
    payload: Dict[str, Any] = Body(...),
    workflow: ReviewWorkflow = Depends(get_workflow),
):
    edit = parse_edit(GoalSelfAssessmentEdit, payload)
    return _apply_and_save(workflow, lambda: workflow.update_goal_self_assessment(kra_id, goal_id, edit))


@router.patch("/{review_id}/kras/{kra_id}/goals/{goal_id}/r1-validation", response_model=ReviewData)
def edit_goal_r1_validation(
    kra_id: str,
    goal_id: str,
    payload: Dict[str, Any] = Body(...),
    workflow: ReviewWorkflow = Depends(get_workflow),
):
    edit = parse_edit(GoalR1ValidationEdit, payload)
    return _apply_and_save(workflow, lambda: workflow.update_goal_r1_validation(kra_id, goal_id, edit))


@router.patch("/{review_id}/kras/{kra_id}/goals/{goal_id}/r2-validation", response_model=ReviewData)
def edit_goal_r2_validation(
    kra_id: str,
    goal_id: str,
    payload: Dict[str, Any] = Body(...),
    workflow: ReviewWorkflow = Depends(get_workflow),
):
    edit = parse_edit(GoalR2ValidationEdit, payload)
    return _apply_and_save(workflow, lambda: workflow.update_goal_r2_validation(kra_id, goal_id, edit))


@router.patch("/{review_id}/kras/{kra_id}/goals/{goal_id}/progress", response_model=ReviewData)
def edit_goal_progress(
    kra_id: str,
    goal_id: str,
    progress: GoalProgressUpdate,
    workflow: ReviewWorkflow = Depends(get_workflow),
):
    return _apply_and_save(workflow, lambda: workflow.update_goal_progress(kra_id, goal_id, progress))


# ============================================================================
# EVIDENCE
# ============================================================================
@router.post("/{review_id}/kras/{kra_id}/evidence", response_model=EvidenceUploadResult)
@limiter.limit(settings.upload_rate_limit)
async def upload_evidence(
    request: Request,
    kra_id: str,
    file: UploadFile = File(...),
    goal_id: Optional[str] = Form(None),
    workflow: ReviewWorkflow = Depends(get_workflow),
):
    """
    Attach a file to the KRA, or to one of its goals when goal_id is given.
    PDF, Word, image and plain-text files up to 10MB.
    """
    if file.size is not None and workflow.evidence is not None:
        # reject on the declared size before reading the body
        workflow.evidence.check_size(file.size)
    content = await file.read()
    logger.info(
        f"Evidence upload for review {workflow.review.id}: {file.filename} ({len(content)} bytes)",
        extra={"kra_id": kra_id, "goal_id": goal_id},
    )
    upload = EvidenceUpload(
        filename=file.filename or "unnamed",
        mime_type=file.content_type or "application/octet-stream",
        content=content,
    )
    evidence = workflow.add_evidence(kra_id, goal_id or None, upload)
    return EvidenceUploadResult(evidence=evidence, review=workflow.review)


@router.delete("/{review_id}/kras/{kra_id}/evidence/{evidence_id}", response_model=ReviewData)
def delete_evidence(
    kra_id: str,
    evidence_id: str,
    goal_id: Optional[str] = Query(None),
    workflow: ReviewWorkflow = Depends(get_workflow),
):
    return workflow.remove_evidence(kra_id, goal_id or None, evidence_id)
