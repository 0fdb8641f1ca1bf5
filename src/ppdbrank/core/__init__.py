"""Core admission engine components."""

from __future__ import annotations

# NOTE: keep imports explicit for export clarity.
from .quota import QUOTA_CSV_HEADERS, QuotaConfig, QuotaStore, parse_quota_csv
from .ranking import (
    MajorRanking,
    MajorStatistics,
    OverallStatistics,
    RankedEntry,
    RankingConfig,
    RankingEngine,
    RankingResult,
)
from .reconciler import STATUS_MAPPING, ReconciliationReport, StatusReconciler
from .scoring import ScoreBreakdown, ScoreCalculator, round_score

__all__ = [
    "MajorRanking",
    "MajorStatistics",
    "OverallStatistics",
    "QUOTA_CSV_HEADERS",
    "QuotaConfig",
    "QuotaStore",
    "RankedEntry",
    "RankingConfig",
    "RankingEngine",
    "RankingResult",
    "ReconciliationReport",
    "STATUS_MAPPING",
    "ScoreBreakdown",
    "ScoreCalculator",
    "StatusReconciler",
    "parse_quota_csv",
    "round_score",
]
