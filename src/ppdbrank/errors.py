"""Domain error hierarchy.

Every error carries a stable ``code`` so an outer request layer can map it to
a response without inspecting messages.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover
    from .schemas.quota import QuotaValidation


class AdmissionError(Exception):
    """Base class for admission engine errors."""

    code = "ADMISSION_ERROR"
    retryable = False

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": str(self), "retryable": self.retryable}


class QuotaValidationError(AdmissionError):
    """Raised when a quota candidate fails validation; nothing is written."""

    code = "VALIDATION_ERROR"

    def __init__(self, validation: "QuotaValidation"):
        super().__init__("Quota configuration is invalid")
        self.validation = validation

    def __str__(self) -> str:
        problems = "; ".join(f"{item.field}: {item.message}" for item in self.validation.errors)
        return f"Quota configuration is invalid: {problems}"

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["errors"] = [item.model_dump() for item in self.validation.errors]
        payload["warnings"] = list(self.validation.warnings)
        return payload


class IncompleteRankingError(AdmissionError):
    """The applicant has no ranking record and takes no part in ranking."""

    code = "INCOMPLETE_RANKING"

    def __init__(self, applicant_id: str):
        super().__init__(f"Applicant {applicant_id!r} has no complete ranking record")
        self.applicant_id = applicant_id


class NotFoundError(AdmissionError):
    """Unknown applicant or major."""

    code = "NOT_FOUND"

    def __init__(self, kind: str, key: str):
        super().__init__(f"Unknown {kind}: {key!r}")
        self.kind = kind
        self.key = key


class UpstreamUnavailableError(AdmissionError):
    """A data-store read or write failed. Safe for the caller to retry."""

    code = "UPSTREAM_UNAVAILABLE"
    retryable = True


__all__ = [
    "AdmissionError",
    "IncompleteRankingError",
    "NotFoundError",
    "QuotaValidationError",
    "UpstreamUnavailableError",
]
