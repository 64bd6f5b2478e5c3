"""
Backing stores for evidence files.

Deletion is two-phase: `delete` moves a file aside and `purge` drops it for
good, so a delete can be undone with `restore` if a later step fails.
"""
import json
import logging
import re
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Tuple

from pms.core.exceptions import ExternalServiceError, NotFoundError

logger = logging.getLogger(__name__)

_SAFE_ID = re.compile(r"^[A-Za-z0-9_-]+$")


class EvidenceStorage(ABC):
    @abstractmethod
    def put(self, evidence_id: str, content: bytes, metadata: Dict[str, Any]) -> None: ...

    @abstractmethod
    def delete(self, evidence_id: str) -> None: ...

    @abstractmethod
    def restore(self, evidence_id: str) -> None: ...

    @abstractmethod
    def purge(self, evidence_id: str) -> None: ...

    @abstractmethod
    def open(self, evidence_id: str) -> Tuple[Path, Dict[str, Any]]: ...


class LocalEvidenceStorage(EvidenceStorage):
    """Files on local disk under `root`, each with a JSON metadata sidecar."""

    def __init__(self, root: str):
        self.root = Path(root)
        self.trash = self.root / ".trash"

    def _paths(self, base: Path, evidence_id: str) -> Tuple[Path, Path]:
        if not _SAFE_ID.match(evidence_id):
            raise NotFoundError(f"Evidence {evidence_id!r} not found")
        return base / evidence_id, base / f"{evidence_id}.json"

    def put(self, evidence_id: str, content: bytes, metadata: Dict[str, Any]) -> None:
        data_path, meta_path = self._paths(self.root, evidence_id)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            data_path.write_bytes(content)
            meta_path.write_text(json.dumps(metadata), encoding="utf-8")
            logger.info(f"Stored evidence {evidence_id} ({len(content)} bytes)")
        except OSError as e:
            logger.error(f"Evidence write failed for {evidence_id}: {e}")
            data_path.unlink(missing_ok=True)
            raise ExternalServiceError("File upload failed", details={"evidence_id": evidence_id})

    def _move(self, evidence_id: str, source: Path, target: Path) -> bool:
        src_data, src_meta = self._paths(source, evidence_id)
        dst_data, dst_meta = self._paths(target, evidence_id)
        if not src_data.exists():
            return False
        try:
            target.mkdir(parents=True, exist_ok=True)
            shutil.move(str(src_data), str(dst_data))
            if src_meta.exists():
                shutil.move(str(src_meta), str(dst_meta))
        except OSError as e:
            logger.error(f"Evidence move failed for {evidence_id}: {e}")
            raise ExternalServiceError("Failed to delete evidence", details={"evidence_id": evidence_id})
        return True

    def delete(self, evidence_id: str) -> None:
        if self._move(evidence_id, self.root, self.trash):
            logger.info(f"Deleted evidence {evidence_id}")
        else:
            logger.info(f"Evidence {evidence_id} already absent from storage")

    def restore(self, evidence_id: str) -> None:
        if self._move(evidence_id, self.trash, self.root):
            logger.info(f"Restored evidence {evidence_id}")

    def purge(self, evidence_id: str) -> None:
        data_path, meta_path = self._paths(self.trash, evidence_id)
        try:
            data_path.unlink(missing_ok=True)
            meta_path.unlink(missing_ok=True)
        except OSError as e:
            # the reference is already gone; a leftover file in .trash is harmless
            logger.warning(f"Could not purge evidence {evidence_id}: {e}")

    def open(self, evidence_id: str) -> Tuple[Path, Dict[str, Any]]:
        data_path, meta_path = self._paths(self.root, evidence_id)
        if not data_path.exists():
            raise NotFoundError(f"Evidence {evidence_id} not found")
        metadata = {}
        if meta_path.exists():
            metadata = json.loads(meta_path.read_text(encoding="utf-8"))
        return data_path, metadata
