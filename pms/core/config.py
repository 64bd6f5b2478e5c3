import os
import logging
from pydantic import BaseModel, Field
from typing import List
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class Settings(BaseModel):
    app_name: str = "PMS Review Service"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"
    version: str = "1.0.0"
    request_id_header: str = "X-Request-ID"

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./pms.db")

    # Evidence storage
    evidence_dir: str = os.getenv("EVIDENCE_DIR", "./evidence")
    max_evidence_bytes: int = int(os.getenv("MAX_EVIDENCE_BYTES", str(10 * 1024 * 1024)))
    allowed_evidence_types: List[str] = Field(
        default_factory=lambda: [
            "application/pdf",
            "application/msword",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            "image/jpeg",
            "image/png",
            "image/gif",
            "text/plain",
        ]
    )

    # Review workflow
    # When false, edits outside the caller's role/stage are dropped instead of rejected.
    strict_permissions: bool = _env_flag("PMS_STRICT_PERMISSIONS", "true")

    # Rate limiting
    rate_limit_enabled: bool = _env_flag("RATE_LIMIT_ENABLED", "true")
    rate_limit_per_minute: int = int(os.getenv("RATE_LIMIT_PER_MINUTE", "120"))
    upload_rate_limit: str = os.getenv("UPLOAD_RATE_LIMIT", "20/minute")

    # CORS: comma-separated origins loaded from env.
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://localhost:5173,"
                "http://127.0.0.1:3000,http://127.0.0.1:5173",
            ).split(",")
            if o.strip()
        ]
    )


settings = Settings()

# --- Startup Validation for Production ---
_logger = logging.getLogger(__name__)
if settings.environment not in ("development", "testing"):
    if settings.database_url.startswith("sqlite"):
        _logger.warning("⚠ Using SQLite outside development; set DATABASE_URL for production.")
    if not settings.strict_permissions:
        _logger.warning("⚠ PMS_STRICT_PERMISSIONS is off: unauthorized edits will be silently dropped.")
