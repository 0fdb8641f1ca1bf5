"""Compare live admission status against the persisted decision."""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import IncompleteRankingError
from ..schemas import AdmissionStatus, Applicant, PersistedStatus
from .ranking import RankingResult
from .scoring import round_score

STATUS_MAPPING: dict[AdmissionStatus, PersistedStatus] = {
    "DITERIMA": "ACCEPTED",
    "CADANGAN": "PENDING",
    "TIDAK_DITERIMA": "REJECTED",
}


@dataclass(slots=True)
class LiveStatus:
    status: AdmissionStatus
    rank: int
    total_score: float
    major: str
    distance_from_cutoff: float
    is_above_cutoff: bool


@dataclass(slots=True)
class PersistedStatusView:
    status: PersistedStatus
    mapped_live_status: PersistedStatus


@dataclass(slots=True)
class StatusComparison:
    is_consistent: bool
    needs_update: bool


@dataclass(slots=True)
class MajorSnapshot:
    total_applicants: int
    accepted: int
    rejected: int
    cutoff_score: float
    highest_score: float


@dataclass(slots=True)
class ApplicantSummary:
    applicant_id: str
    full_name: str
    first_choice: str
    has_complete_ranking: bool


@dataclass(slots=True)
class ReconciliationReport:
    """Advisory report; persisting a correction is left to the caller."""

    live: LiveStatus
    persisted: PersistedStatusView
    comparison: StatusComparison
    major_statistics: MajorSnapshot
    applicant: ApplicantSummary


class StatusReconciler:
    """Diagnose drift between a ranking run and an applicant's stored status."""

    @staticmethod
    def map_status(status: AdmissionStatus) -> PersistedStatus:
        return STATUS_MAPPING[status]

    def reconcile(self, applicant: Applicant, rankings: RankingResult) -> ReconciliationReport:
        entry = rankings.locate(applicant.applicant_id)
        if entry is None:
            raise IncompleteRankingError(applicant.applicant_id)

        major = rankings[entry.major]
        cutoff = major.cutoff_score
        distance = round_score(entry.total_score - cutoff)
        mapped = self.map_status(entry.status)
        consistent = applicant.final_status == mapped

        return ReconciliationReport(
            live=LiveStatus(
                status=entry.status,
                rank=entry.rank,
                total_score=entry.total_score,
                major=entry.major,
                distance_from_cutoff=distance,
                is_above_cutoff=distance >= 0,
            ),
            persisted=PersistedStatusView(
                status=applicant.final_status,
                mapped_live_status=mapped,
            ),
            comparison=StatusComparison(
                is_consistent=consistent,
                needs_update=not consistent,
            ),
            major_statistics=MajorSnapshot(
                total_applicants=len(major),
                accepted=len(major.with_status("DITERIMA")),
                rejected=len(major.with_status("TIDAK_DITERIMA")),
                cutoff_score=cutoff,
                highest_score=major.highest_score,
            ),
            applicant=ApplicantSummary(
                applicant_id=applicant.applicant_id,
                full_name=applicant.full_name,
                first_choice=applicant.first_choice,
                has_complete_ranking=applicant.has_complete_ranking,
            ),
        )
