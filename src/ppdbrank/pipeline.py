"""Admission service assembly: rankings, status checks, quota changes, sync."""

from __future__ import annotations

import csv
import json
from collections import Counter
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Mapping

import pendulum
import structlog

from . import __version__
from .adapters import ApplicantLoadError, ApplicantRepository
from .core import (
    STATUS_MAPPING,
    QuotaStore,
    RankingEngine,
    RankingResult,
    ReconciliationReport,
    StatusReconciler,
    parse_quota_csv,
)
from .errors import (
    AdmissionError,
    IncompleteRankingError,
    NotFoundError,
    QuotaValidationError,
    UpstreamUnavailableError,
)
from .schemas import Applicant, PersistedStatus, QuotaUpdateResult, major_name


@dataclass(slots=True)
class SyncOutcome:
    """What a status sync did for one applicant."""

    applicant_id: str
    full_name: str
    major: str | None = None
    rank: int | None = None
    total_score: float | None = None
    previous_status: PersistedStatus | None = None
    new_status: PersistedStatus | None = None
    updated: bool = False
    skipped: bool = False
    reason: str | None = None
    error: str | None = None


@dataclass(slots=True)
class SyncReport:
    """Summary of a status sync run."""

    dry_run: bool
    force: bool
    major: str | None
    rank_range: tuple[int, int] | None
    total_applicants: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    results: list[SyncOutcome] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def by_status(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for outcome in self.results:
            if outcome.new_status is not None and not outcome.skipped:
                counts[outcome.new_status] = counts.get(outcome.new_status, 0) + 1
        return counts


class AdmissionService:
    """Entry point for the surrounding request layer.

    Every call recomputes from the current applicant and quota snapshots;
    nothing is cached between calls.
    """

    def __init__(
        self,
        *,
        engine: RankingEngine,
        reconciler: StatusReconciler,
        quota_store: QuotaStore,
        applicants: ApplicantRepository,
        audit_logger: "AuditLogger | None" = None,
    ) -> None:
        self._engine = engine
        self._reconciler = reconciler
        self._quota_store = quota_store
        self._applicants = applicants
        self._audit = audit_logger
        self._logger = structlog.get_logger(__name__)

    @property
    def quota_store(self) -> QuotaStore:
        return self._quota_store

    def compute_rankings(
        self,
        applicants: list[Applicant] | None = None,
        quotas: Mapping[str, int] | None = None,
    ) -> RankingResult:
        if applicants is None:
            applicants = self._fetch_all()
        if quotas is None:
            quotas = self._quota_store.snapshot()
        return self._engine.rank(applicants, quotas)

    def compute_applicant_status(
        self,
        applicant_id: str,
        rankings: RankingResult | None = None,
    ) -> ReconciliationReport:
        applicant = self._fetch_one(applicant_id)
        if applicant is None:
            raise NotFoundError("applicant", applicant_id)
        if not applicant.has_complete_ranking:
            raise IncompleteRankingError(applicant_id)
        if rankings is None:
            rankings = self.compute_rankings()
        report = self._reconciler.reconcile(applicant, rankings)
        if report.comparison.needs_update:
            self._logger.info(
                "status.drift",
                applicant_id=applicant_id,
                persisted=report.persisted.status,
                live=report.persisted.mapped_live_status,
            )
        return report

    def quota_overview(self) -> dict[str, Any]:
        quotas = self._quota_store.get_current_quotas()
        return {
            "quotas": quotas,
            "statistics": self._quota_store.get_quota_statistics(quotas).model_dump(),
        }

    def update_quota(self, candidate: Mapping[str, Any]) -> QuotaUpdateResult:
        """Validate and apply a quota change; invalid input changes nothing."""
        try:
            result = self._quota_store.update_multiple_quotas(
                candidate,
                historical_applicants=self._applicant_volume(),
            )
        except QuotaValidationError as exc:
            return self._rejected(exc)
        self._record({"event": "quota.updated", "quotas": result.quotas})
        return result

    def reset_quota(self) -> QuotaUpdateResult:
        return self.update_quota(self._quota_store.defaults)

    def import_quotas_csv(self, text: str) -> QuotaUpdateResult:
        """Apply a quota table exported by :meth:`QuotaStore.export_csv`."""
        try:
            candidate = parse_quota_csv(text)
        except QuotaValidationError as exc:
            return self._rejected(exc)
        return self.update_quota(candidate)

    def suggest_quotas(self, target_total: int | None = None) -> dict[str, Any]:
        """Propose a quota table from first-choice demand; nothing is applied."""
        applicants = self._fetch_all()
        demand = Counter(applicant.first_choice for applicant in applicants)
        suggestion = self._quota_store.suggest_quotas(demand, target_total=target_total)
        validation = self._quota_store.validate_quota_configuration(
            suggestion,
            historical_applicants=len(applicants) or None,
        )
        return {
            "quotas": suggestion,
            "demand": {code: demand.get(code, 0) for code in suggestion},
            "validation": validation.model_dump(),
        }

    def sync_statuses(
        self,
        *,
        major: str | None = None,
        rank_range: tuple[int, int] | None = None,
        force: bool = False,
        dry_run: bool = False,
    ) -> SyncReport:
        """Write live statuses back to the applicant store.

        A failure for one applicant is recorded and the run continues.
        """
        applicants = self._fetch_all()
        rankings = self.compute_rankings(applicants=applicants)
        report = SyncReport(dry_run=dry_run, force=force, major=major, rank_range=rank_range)

        for applicant in applicants:
            if not applicant.has_complete_ranking:
                continue
            if major is not None and applicant.first_choice != major:
                continue
            report.total_applicants += 1
            outcome = SyncOutcome(applicant_id=applicant.applicant_id, full_name=applicant.full_name)
            report.results.append(outcome)

            entry = rankings.locate(applicant.applicant_id)
            if entry is None:
                outcome.error = "no live ranking for applicant"
                report.errors.append(f"{applicant.applicant_id}: {outcome.error}")
                report.failed += 1
                continue

            outcome.major = entry.major
            outcome.rank = entry.rank
            outcome.total_score = entry.total_score
            outcome.previous_status = applicant.final_status
            outcome.new_status = STATUS_MAPPING[entry.status]

            if rank_range is not None and not rank_range[0] <= entry.rank <= rank_range[1]:
                outcome.skipped = True
                outcome.reason = f"rank {entry.rank} outside {rank_range[0]}-{rank_range[1]}"
                report.skipped += 1
                continue

            if not force and outcome.previous_status == outcome.new_status:
                outcome.skipped = True
                outcome.reason = "status already consistent"
                report.skipped += 1
                continue

            if not dry_run:
                try:
                    self._applicants.save_status(applicant.applicant_id, outcome.new_status)
                except AdmissionError as exc:
                    outcome.error = str(exc)
                    report.errors.append(f"{applicant.applicant_id}: {exc}")
                    report.failed += 1
                    self._logger.warning(
                        "status.sync_failed",
                        applicant_id=applicant.applicant_id,
                        code=exc.code,
                        error=str(exc),
                    )
                    continue
                outcome.updated = True
                self._record(
                    {
                        "event": "status.synced",
                        "applicant_id": applicant.applicant_id,
                        "previous_status": outcome.previous_status,
                        "new_status": outcome.new_status,
                        "rank": entry.rank,
                        "total_score": entry.total_score,
                        "major": entry.major,
                    }
                )
            report.processed += 1

        self._logger.info(
            "status.synced",
            dry_run=dry_run,
            total=report.total_applicants,
            processed=report.processed,
            skipped=report.skipped,
            failed=report.failed,
        )
        return report

    def _fetch_all(self) -> list[Applicant]:
        try:
            return list(self._applicants.fetch_applicants())
        except ApplicantLoadError as exc:
            self._logger.warning("applicants.partial_load", errors=exc.errors)
            return list(exc.partial)

    def _fetch_one(self, applicant_id: str) -> Applicant | None:
        try:
            return self._applicants.fetch_applicant(applicant_id)
        except ApplicantLoadError as exc:
            self._logger.warning("applicants.partial_load", errors=exc.errors)
            for applicant in exc.partial:
                if applicant.applicant_id == applicant_id:
                    return applicant
            return None

    def _applicant_volume(self) -> int | None:
        try:
            return len(self._fetch_all())
        except UpstreamUnavailableError as exc:
            self._logger.warning("quota.volume_unavailable", error=str(exc))
            return None

    def _rejected(self, exc: QuotaValidationError) -> QuotaUpdateResult:
        current = self._quota_store.get_current_quotas()
        return QuotaUpdateResult(
            quotas=current,
            validation=exc.validation,
            applied=False,
            statistics=self._quota_store.get_quota_statistics(current),
        )

    def _record(self, record: dict[str, Any]) -> None:
        if self._audit:
            self._audit.append(record)


def build_ranking_document(
    rankings: RankingResult,
    *,
    quotas: Mapping[str, int] | None = None,
) -> dict[str, Any]:
    """Serializable view of a ranking run with statistics."""
    statistics = rankings.statistics()
    majors = {
        major: {
            "name": major_name(major),
            "quota": ranking.quota,
            "cutoff_score": ranking.cutoff_score,
            "statistics": asdict(statistics[major]),
            "entries": [asdict(entry) for entry in ranking.entries],
        }
        for major, ranking in rankings.majors.items()
    }
    metadata = {
        "timestamp": pendulum.now().to_iso8601_string(),
        "app_version": __version__,
        "quotas": dict(quotas) if quotas is not None else {
            major: ranking.quota for major, ranking in rankings.majors.items()
        },
        "excluded": list(rankings.excluded),
    }
    return {
        "metadata": metadata,
        "overall": asdict(rankings.overall_statistics()),
        "majors": majors,
    }


class OutputWriter:
    """Persist ranking exports."""

    CSV_HEADERS = ("major", "rank", "applicant_id", "full_name", "total_score", "status")

    def write(self, path: Path, payload: dict | list[dict]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2),
            encoding="utf-8",
        )

    def write_csv(self, path: Path, rankings: RankingResult) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8", newline="") as handle:
            writer = csv.writer(handle)
            writer.writerow(self.CSV_HEADERS)
            for ranking in rankings:
                for entry in ranking.entries:
                    writer.writerow(
                        [
                            entry.major,
                            entry.rank,
                            entry.applicant_id,
                            entry.full_name,
                            f"{entry.total_score:.2f}",
                            entry.status,
                        ]
                    )


class AuditLogger:
    """Append-only audit logger writing JSON lines."""

    def __init__(self, path: Path):
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def append(self, record: dict) -> None:
        stamped = {"timestamp": pendulum.now().to_iso8601_string(), **record}
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(stamped, ensure_ascii=False))
            handle.write("\n")
