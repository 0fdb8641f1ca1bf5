"""In-process repositories."""

from __future__ import annotations

import threading
from typing import Iterable, Mapping

from ..errors import NotFoundError
from ..schemas import Applicant, PersistedStatus


class InMemoryApplicantRepository:
    """Dict-backed applicant store keyed by applicant id."""

    def __init__(self, applicants: Iterable[Applicant] = ()) -> None:
        self._applicants: dict[str, Applicant] = {
            applicant.applicant_id: applicant for applicant in applicants
        }
        self._lock = threading.Lock()

    def fetch_applicants(self) -> list[Applicant]:
        return list(self._applicants.values())

    def fetch_applicant(self, applicant_id: str) -> Applicant | None:
        return self._applicants.get(applicant_id)

    def save_status(self, applicant_id: str, status: PersistedStatus) -> None:
        with self._lock:
            try:
                applicant = self._applicants[applicant_id]
            except KeyError as exc:
                raise NotFoundError("applicant", applicant_id) from exc
            self._applicants[applicant_id] = applicant.model_copy(update={"final_status": status})


class InMemoryQuotaRepository:
    """Holds the quota mapping in process memory."""

    def __init__(self, initial: Mapping[str, int] | None = None) -> None:
        self.data: dict[str, int] | None = dict(initial) if initial is not None else None
        self.persist_count = 0

    def load(self) -> dict[str, int] | None:
        return dict(self.data) if self.data is not None else None

    def persist(self, quotas: Mapping[str, int]) -> None:
        self.data = dict(quotas)
        self.persist_count += 1
