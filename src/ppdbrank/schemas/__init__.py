"""Pydantic schema definitions for applicants, rankings and quotas."""

from __future__ import annotations

from .applicant import AdmissionStatus, Applicant, PersistedStatus, RankingRecord
from .majors import DEFAULT_QUOTAS, MAJOR_NAMES, major_name, normalize_major_code
from .quota import FieldError, QuotaStatistics, QuotaUpdateResult, QuotaValidation

__all__ = [
    "AdmissionStatus",
    "Applicant",
    "DEFAULT_QUOTAS",
    "FieldError",
    "MAJOR_NAMES",
    "PersistedStatus",
    "QuotaStatistics",
    "QuotaUpdateResult",
    "QuotaValidation",
    "RankingRecord",
    "major_name",
    "normalize_major_code",
]
