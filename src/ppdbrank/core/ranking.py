"""Per-major ranking with quota cutoff."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Literal, Mapping

import structlog

from ..errors import NotFoundError, QuotaValidationError
from ..schemas import AdmissionStatus, Applicant, FieldError, QuotaValidation
from .scoring import ScoreCalculator, round_score

DifficultyBand = Literal["very_easy", "easy", "moderate", "hard", "very_hard"]

_DIFFICULTY_BANDS: tuple[tuple[float, DifficultyBand], ...] = (
    (1.2, "very_easy"),
    (2.0, "easy"),
    (3.0, "moderate"),
    (5.0, "hard"),
)


@dataclass(slots=True, frozen=True)
class RankedEntry:
    """One applicant's position within a major."""

    applicant_id: str
    major: str
    total_score: float
    rank: int
    status: AdmissionStatus
    full_name: str = ""
    nisn: str | None = None


@dataclass(slots=True)
class MajorStatistics:
    """Aggregate view over one major's ranked list."""

    major: str
    quota: int
    total_applicants: int
    accepted: int
    waitlisted: int
    rejected: int
    cutoff_score: float
    highest_score: float
    lowest_score: float
    average_score: float
    competition_ratio: float
    difficulty: DifficultyBand


@dataclass(slots=True)
class OverallStatistics:
    """Aggregate view across all majors."""

    total_ranked: int
    total_excluded: int
    total_accepted: int
    total_waitlisted: int
    total_rejected: int
    total_quota: int
    average_score: float
    highest_score: float
    lowest_score: float
    competition_ratio: float


@dataclass(slots=True, frozen=True)
class MajorRanking:
    """Ordered entries for one major together with its quota."""

    major: str
    quota: int
    entries: tuple[RankedEntry, ...] = ()

    def __len__(self) -> int:
        return len(self.entries)

    def with_status(self, status: AdmissionStatus) -> list[RankedEntry]:
        return [entry for entry in self.entries if entry.status == status]

    @property
    def cutoff_score(self) -> float:
        accepted = self.with_status("DITERIMA")
        return accepted[-1].total_score if accepted else 0.0

    @property
    def highest_score(self) -> float:
        return self.entries[0].total_score if self.entries else 0.0

    def find(self, applicant_id: str) -> RankedEntry | None:
        for entry in self.entries:
            if entry.applicant_id == applicant_id:
                return entry
        return None

    def statistics(self) -> MajorStatistics:
        scores = [entry.total_score for entry in self.entries]
        ratio = len(self.entries) / (self.quota or 1)
        return MajorStatistics(
            major=self.major,
            quota=self.quota,
            total_applicants=len(self.entries),
            accepted=len(self.with_status("DITERIMA")),
            waitlisted=len(self.with_status("CADANGAN")),
            rejected=len(self.with_status("TIDAK_DITERIMA")),
            cutoff_score=self.cutoff_score,
            highest_score=self.highest_score,
            lowest_score=scores[-1] if scores else 0.0,
            average_score=round_score(sum(scores) / len(scores)) if scores else 0.0,
            competition_ratio=round_score(ratio),
            difficulty=difficulty_band(ratio),
        )


@dataclass(slots=True, frozen=True)
class RankingResult:
    """Output of one ranking run.

    ``majors`` holds every configured major, including empty ones.
    ``excluded`` lists applicants left out because they have no ranking
    record or chose a major without a configured quota.
    """

    majors: Mapping[str, MajorRanking]
    excluded: tuple[str, ...] = field(default=())

    def __getitem__(self, major: str) -> MajorRanking:
        try:
            return self.majors[major]
        except KeyError as exc:
            raise NotFoundError("major", major) from exc

    def __iter__(self):
        return iter(self.majors.values())

    def as_mapping(self) -> dict[str, list[RankedEntry]]:
        return {major: list(ranking.entries) for major, ranking in self.majors.items()}

    def locate(self, applicant_id: str) -> RankedEntry | None:
        for ranking in self.majors.values():
            entry = ranking.find(applicant_id)
            if entry is not None:
                return entry
        return None

    def overall_ranking(self) -> list[RankedEntry]:
        entries = [entry for ranking in self.majors.values() for entry in ranking.entries]
        return sorted(entries, key=lambda entry: (-entry.total_score, entry.applicant_id))

    def overall_rank(self, applicant_id: str) -> int | None:
        for position, entry in enumerate(self.overall_ranking(), start=1):
            if entry.applicant_id == applicant_id:
                return position
        return None

    def top_performers(self, limit: int = 10) -> list[RankedEntry]:
        return self.overall_ranking()[:limit]

    def with_status(self, status: AdmissionStatus) -> list[RankedEntry]:
        """Entries of every major holding ``status``, in overall order."""
        return [entry for entry in self.overall_ranking() if entry.status == status]

    def statistics(self) -> dict[str, MajorStatistics]:
        return {major: ranking.statistics() for major, ranking in self.majors.items()}

    def overall_statistics(self) -> OverallStatistics:
        per_major = self.statistics().values()
        scores = [entry.total_score for entry in self.overall_ranking()]
        total_quota = sum(ranking.quota for ranking in self.majors.values())
        return OverallStatistics(
            total_ranked=len(scores),
            total_excluded=len(self.excluded),
            total_accepted=sum(stats.accepted for stats in per_major),
            total_waitlisted=sum(stats.waitlisted for stats in per_major),
            total_rejected=sum(stats.rejected for stats in per_major),
            total_quota=total_quota,
            average_score=round_score(sum(scores) / len(scores)) if scores else 0.0,
            highest_score=scores[0] if scores else 0.0,
            lowest_score=scores[-1] if scores else 0.0,
            competition_ratio=round_score(len(scores) / (total_quota or 1)),
        )


def difficulty_band(competition_ratio: float) -> DifficultyBand:
    for upper, band in _DIFFICULTY_BANDS:
        if competition_ratio <= upper:
            return band
    return "very_hard"


@dataclass
class RankingConfig:
    """Allocation parameters.

    ``waitlist_ratio`` sizes an optional ``CADANGAN`` band right after the
    quota as ``ceil(quota * waitlist_ratio)`` entries. Zero disables it.
    """

    waitlist_ratio: float = 0.0

    def __post_init__(self) -> None:
        if self.waitlist_ratio < 0:
            raise ValueError("waitlist_ratio must not be negative")


class RankingEngine:
    """Rank applicants per first-choice major and apply quota cutoffs.

    Entries are ordered by ``total_score`` descending; equal scores fall back
    to ``applicant_id`` ascending so every run over the same snapshot yields
    the same ranks.
    """

    def __init__(
        self,
        *,
        calculator: ScoreCalculator | None = None,
        config: RankingConfig | None = None,
    ) -> None:
        self._calculator = calculator or ScoreCalculator()
        self._config = config or RankingConfig()
        self._logger = structlog.get_logger(__name__)

    def rank(
        self,
        applicants: Iterable[Applicant],
        quotas: Mapping[str, int],
    ) -> RankingResult:
        """Rank every applicant against its first-choice quota.

        Only the first record of a repeated ``applicant_id`` is ranked. Quota
        values must be non-negative integers; anything else raises
        :class:`QuotaValidationError` before any ranking happens.
        """
        quotas = _checked_quotas(quotas)
        partitions: dict[str, list[tuple[float, Applicant]]] = {major: [] for major in quotas}
        excluded: list[str] = []
        seen: set[str] = set()

        for applicant in applicants:
            if applicant.applicant_id in seen:
                self._logger.warning("ranking.duplicate_applicant", applicant_id=applicant.applicant_id)
                continue
            seen.add(applicant.applicant_id)
            if applicant.ranking is None:
                excluded.append(applicant.applicant_id)
                continue
            bucket = partitions.get(applicant.first_choice)
            if bucket is None:
                self._logger.warning(
                    "ranking.unconfigured_major",
                    applicant_id=applicant.applicant_id,
                    major=applicant.first_choice,
                )
                excluded.append(applicant.applicant_id)
                continue
            bucket.append((self._calculator.total(applicant.ranking), applicant))

        majors = {
            major: self._rank_major(major, quotas[major], bucket)
            for major, bucket in partitions.items()
        }

        self._logger.info(
            "ranking.computed",
            majors=len(majors),
            ranked=sum(len(ranking) for ranking in majors.values()),
            excluded=len(excluded),
        )
        return RankingResult(majors=majors, excluded=tuple(excluded))

    def _rank_major(
        self,
        major: str,
        quota: int,
        scored: list[tuple[float, Applicant]],
    ) -> MajorRanking:
        ordered = sorted(scored, key=lambda item: (-item[0], item[1].applicant_id))
        waitlist_end = quota + self._waitlist_size(quota)
        entries = tuple(
            RankedEntry(
                applicant_id=applicant.applicant_id,
                major=major,
                total_score=score,
                rank=index + 1,
                status=self._status_for(index, quota, waitlist_end),
                full_name=applicant.full_name,
                nisn=applicant.nisn,
            )
            for index, (score, applicant) in enumerate(ordered)
        )
        return MajorRanking(major=major, quota=quota, entries=entries)

    def _waitlist_size(self, quota: int) -> int:
        if self._config.waitlist_ratio <= 0:
            return 0
        return math.ceil(quota * self._config.waitlist_ratio)

    @staticmethod
    def _status_for(index: int, quota: int, waitlist_end: int) -> AdmissionStatus:
        if index < quota:
            return "DITERIMA"
        if index < waitlist_end:
            return "CADANGAN"
        return "TIDAK_DITERIMA"


def _checked_quotas(quotas: Mapping[str, int]) -> dict[str, int]:
    errors = [
        FieldError(field=str(major), message=f"capacity must be a non-negative integer, got {value!r}")
        for major, value in quotas.items()
        if isinstance(value, bool) or not isinstance(value, int) or value < 0
    ]
    if errors:
        raise QuotaValidationError(QuotaValidation(is_valid=False, errors=errors))
    return dict(quotas)
