from typing import Any, Dict, List, Optional


class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class AuthenticationError(AppException):
    def __init__(self, message: str = "Could not identify the acting user"):
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTH_FAILED"
        )


class PermissionDeniedError(AppException):
    """Edit or submit attempted outside the caller's role/stage."""
    def __init__(self, message: str = "Insufficient permissions", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=403,
            error_code="PERMISSION_DENIED",
            details=details
        )


class NotFoundError(AppException):
    def __init__(self, message: str = "Resource not found"):
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND"
        )


class ReviewLockedError(AppException):
    def __init__(self, message: str = "Review is completed and can no longer change"):
        super().__init__(
            message=message,
            status_code=409,
            error_code="REVIEW_LOCKED"
        )


class ReviewExistsError(AppException):
    def __init__(self, review_id: str):
        super().__init__(
            message=f"Review {review_id} already exists",
            status_code=409,
            error_code="REVIEW_EXISTS"
        )


class ValidationError(AppException):
    """
    Carries every collected problem in `messages`, not just the first one.
    """
    def __init__(
        self,
        message: str,
        messages: Optional[List[str]] = None,
        error_code: str = "VALIDATION_FAILED"
    ):
        self.messages = list(messages) if messages else [message]
        super().__init__(
            message=message,
            status_code=422,
            error_code=error_code,
            details={"messages": self.messages}
        )


class EvidenceTooLargeError(ValidationError):
    def __init__(self, limit_label: str):
        super().__init__(
            message=f"File size exceeds {limit_label} limit",
            error_code="EVIDENCE_TOO_LARGE"
        )


class UnsupportedEvidenceTypeError(ValidationError):
    def __init__(self, mime_type: str):
        self.mime_type = mime_type
        super().__init__(
            message="File type not supported. Please upload PDF, Word, Image, or Text files.",
            error_code="EVIDENCE_TYPE_UNSUPPORTED"
        )


class SubmissionIncompleteError(ValidationError):
    def __init__(self, messages: List[str]):
        super().__init__(
            message=f"Review validation failed: {len(messages)} required field(s) missing",
            messages=messages,
            error_code="SUBMISSION_INCOMPLETE"
        )


class ExternalServiceError(AppException):
    """A persistence or storage collaborator rejected the operation."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=502,
            error_code="EXTERNAL_FAILURE",
            details=details
        )
