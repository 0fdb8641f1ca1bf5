"""Quota store: the single owner of per-major capacity."""

from __future__ import annotations

import csv
import io
import math
import threading
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping

import structlog

from ..errors import QuotaValidationError
from ..schemas import (
    DEFAULT_QUOTAS,
    MAJOR_NAMES,
    FieldError,
    QuotaStatistics,
    QuotaUpdateResult,
    QuotaValidation,
    major_name,
)

if TYPE_CHECKING:  # pragma: no cover
    from ..adapters import QuotaRepository

QUOTA_CSV_HEADERS = ("major", "name", "quota", "reserve", "total_capacity")


@dataclass
class QuotaConfig:
    """Validation limits and warning thresholds."""

    max_capacity: int = 200
    small_capacity_warning: int = 10
    large_capacity_warning: int = 100
    total_low_warning: int = 100
    total_high_warning: int = 1000
    volume_low_ratio: float = 0.5
    volume_high_ratio: float = 2.0
    reserve_ratio: float = 0.10
    defaults: dict[str, int] | None = None


class QuotaStore:
    """Validated, atomically updated quota configuration.

    The live configuration is an immutable mapping replaced by a single
    reference assignment once the repository write has succeeded. Readers
    never take the lock and always see either the old or the new mapping.
    """

    def __init__(
        self,
        repository: "QuotaRepository",
        *,
        config: QuotaConfig | None = None,
    ) -> None:
        self._repository = repository
        self._config = config or QuotaConfig()
        self._lock = threading.RLock()
        self._snapshot: Mapping[str, int] | None = None
        self._logger = structlog.get_logger(__name__)

        self._defaults = dict(self._config.defaults or DEFAULT_QUOTAS)
        validation = self._validate(self._defaults, base={}, require_complete=True)
        if not validation.is_valid:
            raise QuotaValidationError(validation)

    @property
    def defaults(self) -> dict[str, int]:
        return dict(self._defaults)

    def snapshot(self) -> Mapping[str, int]:
        """Return the live read-only mapping, loading it on first use."""
        snapshot = self._snapshot
        if snapshot is not None:
            return snapshot
        with self._lock:
            if self._snapshot is None:
                self._snapshot = self._load()
            return self._snapshot

    def get_current_quotas(self) -> dict[str, int]:
        return dict(self.snapshot())

    def validate_quota_configuration(
        self,
        candidate: Mapping[str, Any],
        *,
        historical_applicants: int | None = None,
    ) -> QuotaValidation:
        """Validate a full or partial quota mapping against the live one."""
        return self._validate(
            candidate,
            base=self.snapshot(),
            historical_applicants=historical_applicants,
        )

    def update_multiple_quotas(
        self,
        candidate: Mapping[str, Any],
        *,
        historical_applicants: int | None = None,
    ) -> QuotaUpdateResult:
        """Apply every entry of ``candidate`` or none of them.

        Raises :class:`QuotaValidationError` without touching the repository
        when any entry is invalid.
        """
        with self._lock:
            current = self.snapshot()
            validation = self._validate(
                candidate,
                base=current,
                historical_applicants=historical_applicants,
            )
            if not validation.is_valid:
                self._logger.warning(
                    "quota.rejected",
                    errors=[error.model_dump() for error in validation.errors],
                )
                raise QuotaValidationError(validation)

            updated = {**current, **{str(code): int(value) for code, value in candidate.items()}}
            self._repository.persist(dict(updated))
            self._snapshot = MappingProxyType(updated)

        changes = {
            code: {"from": current[code], "to": updated[code]}
            for code in updated
            if current.get(code) != updated[code]
        }
        self._logger.info("quota.updated", changes=changes, warnings=validation.warnings)
        return QuotaUpdateResult(
            quotas=dict(updated),
            validation=validation,
            applied=True,
            statistics=self.get_quota_statistics(updated),
        )

    def reset_to_defaults(self) -> QuotaUpdateResult:
        return self.update_multiple_quotas(self._defaults)

    def get_quota_statistics(self, quotas: Mapping[str, int] | None = None) -> QuotaStatistics:
        values = dict(self.snapshot() if quotas is None else quotas)
        reserve = {code: self.reserve_for(capacity) for code, capacity in values.items()}
        total = sum(values.values())
        total_reserve = sum(reserve.values())
        return QuotaStatistics(
            total_capacity=total,
            per_major_capacity=values,
            major_count=len(values),
            average_capacity=total / len(values) if values else 0.0,
            per_major_reserve=reserve,
            total_reserve=total_reserve,
            total_capacity_with_reserve=total + total_reserve,
        )

    def reserve_for(self, capacity: int) -> int:
        return math.ceil(capacity * self._config.reserve_ratio)

    def suggest_quotas(
        self,
        demand: Mapping[str, int],
        *,
        target_total: int | None = None,
    ) -> dict[str, int]:
        """Split ``target_total`` across majors in proportion to ``demand``.

        Each share is first held between the small and large capacity
        warning thresholds, then the whole table is rescaled towards
        ``target_total`` and capped at the hard maximum. Majors missing from
        ``demand`` count as zero demand. Without any demand the live table
        is returned unchanged. ``target_total`` defaults to the live total.
        """
        if target_total is None:
            target_total = sum(self.snapshot().values())
        if isinstance(target_total, bool) or not isinstance(target_total, int) or target_total < 0:
            raise QuotaValidationError(
                QuotaValidation(
                    is_valid=False,
                    errors=[
                        FieldError(
                            field="target_total",
                            message=f"target total must be a non-negative integer, got {target_total!r}",
                        )
                    ],
                )
            )

        counts = {code: max(0, int(demand.get(code, 0))) for code in MAJOR_NAMES}
        total_demand = sum(counts.values())
        if not total_demand:
            return self.get_current_quotas()

        config = self._config
        suggested = {
            code: min(
                config.large_capacity_warning,
                max(config.small_capacity_warning, _round_half_up(target_total * count / total_demand)),
            )
            for code, count in counts.items()
        }
        current_total = sum(suggested.values())
        if current_total and current_total != target_total:
            factor = target_total / current_total
            suggested = {
                code: min(config.max_capacity, _round_half_up(value * factor))
                for code, value in suggested.items()
            }
        return suggested

    def export_csv(self, quotas: Mapping[str, int] | None = None) -> str:
        """Render quotas with their reserve and total capacity as CSV."""
        values = dict(self.snapshot() if quotas is None else quotas)
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(QUOTA_CSV_HEADERS)
        for code, capacity in values.items():
            reserve = self.reserve_for(capacity)
            writer.writerow([code, major_name(code), capacity, reserve, capacity + reserve])
        return buffer.getvalue()

    def _load(self) -> Mapping[str, int]:
        stored = self._repository.load()
        if not stored:
            seeded = dict(self._defaults)
            self._repository.persist(dict(seeded))
            self._logger.info("quota.seeded", quotas=seeded)
            return MappingProxyType(seeded)

        validation = self._validate(stored, base={}, require_complete=True)
        if not validation.is_valid:
            raise QuotaValidationError(validation)
        return MappingProxyType({code: int(stored[code]) for code in MAJOR_NAMES})

    def _validate(
        self,
        candidate: Mapping[str, Any],
        *,
        base: Mapping[str, int],
        historical_applicants: int | None = None,
        require_complete: bool = False,
    ) -> QuotaValidation:
        errors: list[FieldError] = []
        warnings: list[str] = []
        config = self._config

        if not isinstance(candidate, Mapping):
            errors.append(FieldError(field="quotas", message="quota configuration must be a mapping"))
            return QuotaValidation(is_valid=False, errors=errors, warnings=warnings)

        accepted: dict[str, int] = {}
        for raw_code, value in candidate.items():
            code = str(raw_code)
            if code not in MAJOR_NAMES:
                errors.append(FieldError(field=code, message="unrecognized major code"))
                continue
            if isinstance(value, bool) or not isinstance(value, int):
                errors.append(FieldError(field=code, message=f"capacity must be an integer, got {value!r}"))
                continue
            if value < 0:
                errors.append(FieldError(field=code, message="capacity must not be negative"))
                continue
            if value > config.max_capacity:
                errors.append(
                    FieldError(field=code, message=f"capacity exceeds maximum of {config.max_capacity}")
                )
                continue
            if value < config.small_capacity_warning:
                warnings.append(f"{code}: capacity {value} is very small")
            if value > config.large_capacity_warning:
                warnings.append(f"{code}: capacity {value} is very large")
            accepted[code] = value

        if require_complete:
            for code in MAJOR_NAMES:
                if code not in candidate:
                    errors.append(FieldError(field=code, message="capacity is missing"))

        if not errors:
            total = sum({**base, **accepted}.values())
            warnings.extend(self._volume_warnings(total, historical_applicants))

        return QuotaValidation(is_valid=not errors, errors=errors, warnings=warnings)

    def _volume_warnings(self, total: int, historical_applicants: int | None) -> list[str]:
        config = self._config
        if historical_applicants:
            if total < historical_applicants * config.volume_low_ratio:
                return [f"total capacity {total} is far below applicant volume {historical_applicants}"]
            if total > historical_applicants * config.volume_high_ratio:
                return [f"total capacity {total} is far above applicant volume {historical_applicants}"]
            return []
        if total < config.total_low_warning:
            return [f"total capacity {total} is very small"]
        if total > config.total_high_warning:
            return [f"total capacity {total} is very large"]
        return []


def parse_quota_csv(text: str) -> dict[str, Any]:
    """Read the ``major`` and ``quota`` columns of an exported quota table.

    Capacities that are not integers stay text so validation reports them
    per field. Other columns are ignored.
    """
    reader = csv.DictReader(io.StringIO(text))
    columns = {name.strip() for name in reader.fieldnames or ()}
    if not {"major", "quota"} <= columns:
        raise QuotaValidationError(
            QuotaValidation(
                is_valid=False,
                errors=[FieldError(field="csv", message="expected 'major' and 'quota' columns")],
            )
        )

    quotas: dict[str, Any] = {}
    for row in reader:
        row = {str(key).strip(): (value or "").strip() for key, value in row.items() if key is not None}
        code = row["major"].upper()
        if not code:
            continue
        value: Any = row["quota"]
        try:
            value = int(value)
        except ValueError:
            pass  # left as text; quota validation reports it
        quotas[code] = value
    return quotas


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)
