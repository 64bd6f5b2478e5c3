from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from pms.database import Base


class AuditLog(Base):
    """Append-only trail of review edits and stage transitions."""
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    action = Column(String, index=True, nullable=False)  # e.g. kra_self_assessment_updated, review_submitted
    entity_type = Column(String, default="review", nullable=False)
    entity_id = Column(String, index=True, nullable=True)
    user_id = Column(String, nullable=True)
    user_role = Column(String, nullable=True)
    details = Column(JSON, nullable=True)
    before_state = Column(JSON, nullable=True)
    after_state = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
