import enum
from typing import Any, List, Optional

from pms.models.audit_log import AuditLog
from pms.schemas.auth import ReviewerContext
from pms.services.base import BaseService


def _sanitize(obj: Any) -> Any:
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json", by_alias=True)
    if isinstance(obj, dict):
        return {k: _sanitize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_sanitize(i) for i in obj]
    if isinstance(obj, enum.Enum):
        return obj.value
    return obj


class AuditService(BaseService):
    def log_action(
        self,
        action: str,
        review_id: Optional[str],
        actor: Optional[ReviewerContext],
        details: dict,
        before_state: Optional[dict] = None,
        after_state: Optional[dict] = None,
    ):
        """
        Append an audit entry to the current session.
        Not committed here: the entry lands together with the review write
        that follows it, and disappears with it on rollback.
        """
        try:
            entry = AuditLog(
                action=action,
                entity_type="review",
                entity_id=review_id,
                user_id=actor.user_id if actor else None,
                user_role=actor.role.value if actor else None,
                details=_sanitize(details),
                before_state=_sanitize(before_state),
                after_state=_sanitize(after_state),
            )
            self.db.add(entry)
            self.db.flush()
            return entry
        except Exception as e:
            self.db.rollback()
            self._logger.error(f"FAILED TO AUDIT LOG: {e}", exc_info=True)
            return None

    def list_for_review(self, review_id: str) -> List[AuditLog]:
        return (
            self.db.query(AuditLog)
            .filter(AuditLog.entity_type == "review", AuditLog.entity_id == review_id)
            .order_by(AuditLog.id.asc())
            .all()
        )
