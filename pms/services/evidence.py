"""
Evidence uploads: validation, size labels and hand-off to storage.
"""
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from pms.core.config import Settings, settings as default_settings
from pms.core.exceptions import EvidenceTooLargeError, UnsupportedEvidenceTypeError
from pms.schemas.evidence import EvidenceUpload
from pms.schemas.review import EvidenceFile
from pms.services.evidence_storage import EvidenceStorage

logger = logging.getLogger(__name__)

SIZE_UNITS = ["Bytes", "KB", "MB", "GB"]


def format_size(num_bytes: int) -> str:
    """Human-readable size, base 1024, at most two decimals: 1536 -> '1.5 KB'."""
    if num_bytes < 0:
        raise ValueError("size cannot be negative")
    if num_bytes == 0:
        return "0 Bytes"
    value = float(num_bytes)
    unit = 0
    while value >= 1024 and unit < len(SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    label = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{label} {SIZE_UNITS[unit]}"


class EvidenceService:
    def __init__(self, storage: EvidenceStorage, settings: Optional[Settings] = None):
        self.storage = storage
        self.settings = settings or default_settings

    def check_size(self, num_bytes: int):
        if num_bytes > self.settings.max_evidence_bytes:
            raise EvidenceTooLargeError(format_size(self.settings.max_evidence_bytes))

    def validate(self, upload: EvidenceUpload):
        self.check_size(upload.size)
        mime_type = (upload.mime_type or "").lower().strip()
        if mime_type not in self.settings.allowed_evidence_types:
            raise UnsupportedEvidenceTypeError(upload.mime_type)

    def upload(self, review_id: str, kra_id: str, goal_id: Optional[str], upload: EvidenceUpload) -> EvidenceFile:
        self.validate(upload)

        evidence_id = f"evidence_{uuid.uuid4().hex}"
        uploaded_at = datetime.now(timezone.utc)
        self.storage.put(
            evidence_id,
            upload.content,
            {
                "name": Path(upload.filename).name or "unnamed",
                "mimeType": upload.mime_type,
                "reviewId": review_id,
                "kraId": kra_id,
                "goalId": goal_id,
                "uploadedAt": uploaded_at.isoformat(),
            },
        )
        logger.info(f"Evidence uploaded: {evidence_id}", extra={"review_id": review_id, "kra_id": kra_id, "goal_id": goal_id})
        return EvidenceFile(
            id=evidence_id,
            name=Path(upload.filename).name or "unnamed",
            size_label=format_size(upload.size),
            mime_type=upload.mime_type,
            uploaded_at=uploaded_at,
            url=f"{self.settings.api_prefix}/evidence/{evidence_id}",
        )

    def delete(self, evidence_id: str) -> None:
        self.storage.delete(evidence_id)

    def restore(self, evidence_id: str) -> None:
        self.storage.restore(evidence_id)

    def purge(self, evidence_id: str) -> None:
        self.storage.purge(evidence_id)

    def open(self, evidence_id: str) -> Tuple[Path, Dict[str, Any]]:
        return self.storage.open(evidence_id)
