"""
One editing session on one review.

ReviewWorkflow holds the current ReviewData snapshot for an acting user and
applies role/stage-gated edits to it. Field edits stay in memory until
`save()`; evidence changes and `submit()` go through the collaborators
straight away. A collaborator failure always leaves the snapshot as it was.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from pms.core.config import settings
from pms.core.exceptions import PermissionDeniedError, ReviewLockedError
from pms.schemas.auth import ReviewerContext
from pms.schemas.evidence import EvidenceUpload
from pms.schemas.review import EvidenceFile, FieldEdit, GoalProgressUpdate, ReviewData
from pms.services import review_mutations as mutations
from pms.services.audit import AuditService
from pms.services.evidence import EvidenceService
from pms.services.permissions import Section, ensure_can_edit, ensure_can_submit
from pms.services.review_repository import ReviewPersistence
from pms.services.submission import advance, ensure_submittable

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ReviewWorkflow:
    def __init__(
        self,
        review: ReviewData,
        actor: ReviewerContext,
        persistence: ReviewPersistence,
        evidence: Optional[EvidenceService] = None,
        audit: Optional[AuditService] = None,
        strict: Optional[bool] = None,
    ):
        self.review = review
        self.actor = actor
        self.persistence = persistence
        self.evidence = evidence
        self.audit = audit
        self.strict = settings.strict_permissions if strict is None else strict

    # ------------------------------------------------------------------
    # gating
    # ------------------------------------------------------------------
    def _permitted(self, check: Callable[[], None], what: str) -> bool:
        """
        Run a permission check. In strict mode a failure raises; otherwise the
        request is dropped and the review stays untouched.
        """
        try:
            check()
        except (PermissionDeniedError, ReviewLockedError) as e:
            if self.strict:
                logger.warning(
                    f"Rejected {what} on review {self.review.id}: {e.message}",
                    extra={"user_id": self.actor.user_id, "role": self.actor.role.value},
                )
                raise
            logger.info(
                f"Dropped {what} on review {self.review.id}: {e.message}",
                extra={"user_id": self.actor.user_id, "role": self.actor.role.value},
            )
            return False
        return True

    def _record(self, action: str, details: dict, before: Optional[dict] = None, after: Optional[dict] = None):
        if self.audit is not None:
            self.audit.log_action(action, self.review.id, self.actor, details, before, after)

    def _edit(
        self,
        section: Section,
        action: str,
        mutate: Callable[[ReviewData], ReviewData],
        details: dict,
    ) -> ReviewData:
        if not self._permitted(lambda: ensure_can_edit(self.actor, self.review, section), action):
            return self.review
        updated = mutate(self.review)
        if updated is self.review:
            logger.debug(f"{action} on review {self.review.id} matched nothing", extra=details)
            return self.review
        self._record(action, details)
        self.review = updated
        return self.review

    # ------------------------------------------------------------------
    # KRA edits
    # ------------------------------------------------------------------
    def update_kra_self_assessment(self, kra_id: str, edit: FieldEdit) -> ReviewData:
        return self._edit(
            Section.SELF, "kra_self_assessment_updated",
            lambda r: mutations.update_kra_self_assessment(r, kra_id, edit),
            {"kra_id": kra_id, "field": edit.field},
        )

    def update_kra_r1_review(self, kra_id: str, edit: FieldEdit) -> ReviewData:
        return self._edit(
            Section.R1, "kra_r1_review_updated",
            lambda r: mutations.update_kra_r1_review(r, kra_id, edit),
            {"kra_id": kra_id, "field": edit.field},
        )

    def update_kra_r2_review(self, kra_id: str, edit: FieldEdit) -> ReviewData:
        return self._edit(
            Section.R2, "kra_r2_review_updated",
            lambda r: mutations.update_kra_r2_review(r, kra_id, edit),
            {"kra_id": kra_id, "field": edit.field},
        )

    # ------------------------------------------------------------------
    # Goal edits
    # ------------------------------------------------------------------
    def update_goal_self_assessment(self, kra_id: str, goal_id: str, edit: FieldEdit) -> ReviewData:
        return self._edit(
            Section.SELF, "goal_self_assessment_updated",
            lambda r: mutations.update_goal_self_assessment(r, kra_id, goal_id, edit),
            {"kra_id": kra_id, "goal_id": goal_id, "field": edit.field},
        )

    def update_goal_r1_validation(self, kra_id: str, goal_id: str, edit: FieldEdit) -> ReviewData:
        return self._edit(
            Section.R1, "goal_r1_validation_updated",
            lambda r: mutations.update_goal_r1_validation(r, kra_id, goal_id, edit),
            {"kra_id": kra_id, "goal_id": goal_id, "field": edit.field},
        )

    def update_goal_r2_validation(self, kra_id: str, goal_id: str, edit: FieldEdit) -> ReviewData:
        return self._edit(
            Section.R2, "goal_r2_validation_updated",
            lambda r: mutations.update_goal_r2_validation(r, kra_id, goal_id, edit),
            {"kra_id": kra_id, "goal_id": goal_id, "field": edit.field},
        )

    def update_goal_progress(self, kra_id: str, goal_id: str, progress: GoalProgressUpdate) -> ReviewData:
        return self._edit(
            Section.SELF, "goal_progress_updated",
            lambda r: mutations.update_goal_progress(r, kra_id, goal_id, progress),
            {"kra_id": kra_id, "goal_id": goal_id, "current_progress": progress.current_progress},
        )

    # ------------------------------------------------------------------
    # Evidence
    # ------------------------------------------------------------------
    def _target_exists(self, kra_id: str, goal_id: Optional[str]) -> bool:
        kra = self.review.kra(kra_id)
        if kra is None:
            return False
        return not goal_id or kra.goal(goal_id) is not None

    def add_evidence(self, kra_id: str, goal_id: Optional[str], upload: EvidenceUpload) -> Optional[EvidenceFile]:
        """
        Upload, attach and persist in one step. Returns None when the target
        KRA/goal does not exist or the edit was dropped.
        """
        if self.evidence is None:
            raise RuntimeError("ReviewWorkflow was created without an evidence service")
        if not self._permitted(lambda: ensure_can_edit(self.actor, self.review, Section.SELF), "evidence upload"):
            return None
        if not self._target_exists(kra_id, goal_id):
            logger.debug(f"Evidence upload on review {self.review.id} targets unknown KRA/goal {kra_id}/{goal_id}")
            return None

        file = self.evidence.upload(self.review.id, kra_id, goal_id, upload)
        updated = mutations.add_evidence(self.review, kra_id, goal_id, file)
        updated = updated.model_copy(update={"last_saved": _now()})
        self._record("evidence_added", {"kra_id": kra_id, "goal_id": goal_id, "evidence_id": file.id, "name": file.name})
        try:
            self.persistence.save(updated)
        except Exception:
            # compensate: the stored file has no reference any more
            self.evidence.delete(file.id)
            self.evidence.purge(file.id)
            raise
        self.review = updated
        return file

    def remove_evidence(self, kra_id: str, goal_id: Optional[str], evidence_id: str) -> ReviewData:
        """
        Delete from storage and drop the reference as one operation. Removing
        an id that is not attached is a no-op.
        """
        if self.evidence is None:
            raise RuntimeError("ReviewWorkflow was created without an evidence service")
        if not self._permitted(lambda: ensure_can_edit(self.actor, self.review, Section.SELF), "evidence removal"):
            return self.review
        if mutations.find_evidence(self.review, kra_id, goal_id, evidence_id) is None:
            return self.review

        self.evidence.delete(evidence_id)
        updated = mutations.remove_evidence(self.review, kra_id, goal_id, evidence_id)
        updated = updated.model_copy(update={"last_saved": _now()})
        self._record("evidence_removed", {"kra_id": kra_id, "goal_id": goal_id, "evidence_id": evidence_id})
        try:
            self.persistence.save(updated)
        except Exception:
            self.evidence.restore(evidence_id)
            raise
        self.evidence.purge(evidence_id)
        self.review = updated
        return self.review

    # ------------------------------------------------------------------
    # Save / submit
    # ------------------------------------------------------------------
    def save(self) -> ReviewData:
        if not self._permitted(lambda: ensure_can_submit(self.actor, self.review), "save"):
            return self.review
        saved = self.review.model_copy(update={"last_saved": _now()})
        self.persistence.save(saved)
        self.review = saved
        logger.info(f"Review {saved.id} saved", extra={"user_id": self.actor.user_id})
        return self.review

    def submit(self) -> ReviewData:
        """Validate the active stage and move the review one stage forward."""
        if not self._permitted(lambda: ensure_can_submit(self.actor, self.review), "submit"):
            return self.review
        ensure_submittable(self.review)
        advanced = advance(self.review, _now())
        self._record(
            "review_submitted",
            {"overall_status": advanced.overall_status},
            before={"stage": self.review.current_stage},
            after={"stage": advanced.current_stage},
        )
        self.persistence.submit(advanced)
        self.review = advanced
        logger.info(
            f"Review {advanced.id} submitted, now in stage {advanced.current_stage.value}",
            extra={"user_id": self.actor.user_id},
        )
        return self.review
