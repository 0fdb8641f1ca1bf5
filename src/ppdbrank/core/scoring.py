"""Composite admission score."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from ..schemas import RankingRecord

SUBJECT_WEIGHT = 0.25

ACHIEVEMENT_POINTS: dict[str, int] = {
    "none": 0,
    "school": 5,
    "district": 10,
    "regency": 15,
    "province": 20,
    "national": 25,
    "international": 30,
}

_ACHIEVEMENT_ALIASES: dict[str, str] = {
    "": "none",
    "tidak ada": "none",
    "sekolah": "school",
    "kecamatan": "district",
    "kabupaten/kota": "regency",
    "kabupaten": "regency",
    "kota": "regency",
    "provinsi": "province",
    "nasional": "national",
    "internasional": "international",
}

ACCREDITATION_POINTS: dict[str, int] = {
    "A": 10,
    "B": 5,
}


def round_score(value: float) -> float:
    """Round half up to two decimals."""
    return math.floor(value * 100 + 0.5) / 100


@dataclass(slots=True, frozen=True)
class ScoreBreakdown:
    """Components of a composite score."""

    academic: float
    achievement_points: int
    accreditation_points: int
    total_score: float


class ScoreCalculator:
    """Turn a ranking record into its composite ``total_score``.

    The academic part is the plain average of the four subject scores with a
    missing score counted as zero. Achievement labels for the academic,
    non-academic and certificate categories each add points on a fixed
    ordinal scale, and school accreditation adds a flat bonus. No cap is
    applied to the sum.
    """

    def breakdown(self, record: "RankingRecord") -> ScoreBreakdown:
        subjects = (
            record.math_score,
            record.indonesian_score,
            record.english_score,
            record.science_score,
        )
        academic = sum(float(score or 0.0) for score in subjects) * SUBJECT_WEIGHT
        achievement = (
            self.achievement_points(record.academic_achievement)
            + self.achievement_points(record.non_academic_achievement)
            + self.achievement_points(record.certificate)
        )
        accreditation = self.accreditation_points(record.accreditation)
        return ScoreBreakdown(
            academic=academic,
            achievement_points=achievement,
            accreditation_points=accreditation,
            total_score=round_score(academic + achievement + accreditation),
        )

    def total(self, record: "RankingRecord") -> float:
        return self.breakdown(record).total_score

    @staticmethod
    def achievement_points(label: str | None) -> int:
        key = (label or "").strip().casefold()
        key = _ACHIEVEMENT_ALIASES.get(key, key)
        return ACHIEVEMENT_POINTS.get(key, 0)

    @staticmethod
    def accreditation_points(tier: str | None) -> int:
        return ACCREDITATION_POINTS.get((tier or "").strip().upper(), 0)


DEFAULT_CALCULATOR = ScoreCalculator()
