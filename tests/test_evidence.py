import pytest
from pms.core.exceptions import EvidenceTooLargeError, NotFoundError, UnsupportedEvidenceTypeError, ValidationError
from pms.schemas.evidence import EvidenceUpload
from pms.services.evidence import format_size

MB = 1024 * 1024


@pytest.mark.parametrize("size, label", [
    (0, "0 Bytes"),
    (512, "512 Bytes"),
    (1024, "1 KB"),
    (1536, "1.5 KB"),
    (1048576, "1 MB"),
    (10 * MB, "10 MB"),
    (1234567, "1.18 MB"),
    (3 * 1024 * MB, "3 GB"),
])
def test_format_size(size, label):
    assert format_size(size) == label


def test_upload_returns_evidence_file(evidence_service):
    upload = EvidenceUpload(filename="cert.pdf", mime_type="application/pdf", content=b"x" * 1536)
    evidence = evidence_service.upload("review-1", "kra-1", None, upload)

    assert evidence.id.startswith("evidence_")
    assert evidence.name == "cert.pdf"
    assert evidence.size_label == "1.5 KB"
    assert evidence.mime_type == "application/pdf"
    assert evidence.url == f"/api/evidence/{evidence.id}"
    assert evidence.uploaded_at.tzinfo is not None

    path, metadata = evidence_service.open(evidence.id)
    assert path.read_bytes() == b"x" * 1536
    assert metadata["reviewId"] == "review-1"
    assert metadata["kraId"] == "kra-1"
    assert metadata["goalId"] is None


def test_each_upload_gets_a_fresh_id(evidence_service):
    upload = EvidenceUpload(filename="a.txt", mime_type="text/plain", content=b"hello")
    assert evidence_service.upload("review-1", "kra-1", None, upload).id != evidence_service.upload("review-1", "kra-1", None, upload).id


def test_oversized_file_rejected(evidence_service):
    upload = EvidenceUpload(filename="video.pdf", mime_type="application/pdf", content=b"0" * (11 * MB))
    with pytest.raises(EvidenceTooLargeError) as exc:
        evidence_service.upload("review-1", "kra-1", None, upload)
    assert isinstance(exc.value, ValidationError)
    assert exc.value.message == "File size exceeds 10 MB limit"


def test_exactly_ten_megabytes_allowed(evidence_service):
    upload = EvidenceUpload(filename="big.pdf", mime_type="application/pdf", content=b"0" * (10 * MB))
    assert evidence_service.upload("review-1", "kra-1", None, upload).size_label == "10 MB"


@pytest.mark.parametrize("mime_type", ["application/zip", "video/mp4", "image/webp", ""])
def test_unsupported_type_rejected(evidence_service, tmp_path, mime_type):
    upload = EvidenceUpload(filename="archive.zip", mime_type=mime_type, content=b"PK")
    with pytest.raises(UnsupportedEvidenceTypeError):
        evidence_service.upload("review-1", "kra-1", "goal-1", upload)
    # nothing was written
    assert not (tmp_path / "evidence").exists() or not any((tmp_path / "evidence").iterdir())


@pytest.mark.parametrize("mime_type", [
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "image/jpeg",
    "image/png",
    "image/gif",
    "text/plain",
])
def test_allowed_types(evidence_service, mime_type):
    upload = EvidenceUpload(filename="file", mime_type=mime_type, content=b"data")
    assert evidence_service.upload("review-1", "kra-1", None, upload).mime_type == mime_type


def test_delete_restore_purge(evidence_service):
    evidence = evidence_service.upload("review-1", "kra-1", None, EvidenceUpload(filename="a.txt", mime_type="text/plain", content=b"a"))

    evidence_service.delete(evidence.id)
    with pytest.raises(NotFoundError):
        evidence_service.open(evidence.id)

    evidence_service.restore(evidence.id)
    path, _ = evidence_service.open(evidence.id)
    assert path.read_bytes() == b"a"

    evidence_service.delete(evidence.id)
    evidence_service.purge(evidence.id)
    evidence_service.restore(evidence.id)
    with pytest.raises(NotFoundError):
        evidence_service.open(evidence.id)


def test_delete_unknown_id_is_harmless(evidence_service):
    evidence_service.delete("evidence_unknown")


def test_path_traversal_ids_are_not_found(evidence_service):
    with pytest.raises(NotFoundError):
        evidence_service.open("../../etc/passwd")


def test_check_size_uses_configured_limit(evidence_service):
    evidence_service.check_size(10 * MB)
    with pytest.raises(EvidenceTooLargeError):
        evidence_service.check_size(10 * MB + 1)
