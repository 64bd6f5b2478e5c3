# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import review, audit_log

# Explicit class exports for cleaner imports
from .review import PerformanceReview, ReviewStage, OverallStatus
from .audit_log import AuditLog
from .user import UserRole

__all__ = [
    "PerformanceReview",
    "ReviewStage",
    "OverallStatus",
    "AuditLog",
    "UserRole",
]
