"""
Exception hierarchy for the DSD pipeline.

Only ExtractionError aborts a pipeline run. StorageError and RecordStoreError
are raised by collaborator adapters and degrade the step that hit them.
"""

from typing import Any, Optional

from dsd.models.enums import ExtractionFailureReason


class DSDError(Exception):
    """Base exception for the DSD pipeline."""

    def __init__(
        self,
        message: str,
        code: str = "DSD_ERROR",
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for callers that surface the error."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ExtractionError(DSDError):
    """The structured extraction could not produce an assessment."""

    RETRYABLE_REASONS = frozenset({
        ExtractionFailureReason.RATE_LIMITED,
        ExtractionFailureReason.UPSTREAM_UNAVAILABLE,
    })

    def __init__(
        self,
        reason: ExtractionFailureReason,
        message: Optional[str] = None,
        model: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.reason = ExtractionFailureReason(reason)
        self.model = model
        self.status_code = status_code
        details: dict[str, Any] = {"reason": self.reason.value, "retryable": self.retryable}
        if model:
            details["model"] = model
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(
            message or f"Extraction failed: {self.reason.value}",
            code="EXTRACTION_ERROR",
            details=details,
        )

    @property
    def retryable(self) -> bool:
        """Rate limits and transient unavailability may be retried with backoff."""
        return self.reason in self.RETRYABLE_REASONS

    @property
    def terminal(self) -> bool:
        return not self.retryable


class StorageError(DSDError):
    """Object storage rejected an upload."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, code="STORAGE_ERROR", details=details)


class RecordStoreError(DSDError):
    """The evaluation record store failed a read or write."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, code="RECORD_STORE_ERROR", details=details)
