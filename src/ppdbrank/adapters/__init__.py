"""Storage adapters for applicants and quotas."""

from __future__ import annotations

from typing import Iterable, Mapping, Protocol, runtime_checkable

from ..schemas import Applicant, PersistedStatus
from .files import ApplicantLoadError, JsonlApplicantRepository, JsonQuotaRepository
from .memory import InMemoryApplicantRepository, InMemoryQuotaRepository


@runtime_checkable
class ApplicantRepository(Protocol):
    """Read access to applicants plus the status write-back used by sync jobs.

    Implementations raise :class:`~ppdbrank.errors.UpstreamUnavailableError`
    when the underlying store cannot be reached.
    """

    def fetch_applicants(self) -> Iterable[Applicant]:
        """Return every applicant, with or without a ranking record."""

    def fetch_applicant(self, applicant_id: str) -> Applicant | None:
        """Return one applicant, with or without a ranking record."""

    def save_status(self, applicant_id: str, status: PersistedStatus) -> None:
        """Persist a new final status for one applicant."""


@runtime_checkable
class QuotaRepository(Protocol):
    """Persistence for the quota mapping."""

    def load(self) -> Mapping[str, object] | None:
        """Return the stored mapping, or ``None`` when nothing was stored yet."""

    def persist(self, quotas: Mapping[str, int]) -> None:
        """Replace the stored mapping."""


__all__ = [
    "ApplicantLoadError",
    "ApplicantRepository",
    "InMemoryApplicantRepository",
    "InMemoryQuotaRepository",
    "JsonQuotaRepository",
    "JsonlApplicantRepository",
    "QuotaRepository",
]
