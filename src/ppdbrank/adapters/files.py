"""File-backed repositories: JSONL applicants and a JSON quota document."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Mapping

from pydantic import ValidationError

from ..errors import NotFoundError, UpstreamUnavailableError
from ..schemas import Applicant, PersistedStatus


class ApplicantLoadError(ValueError):
    """Raised when applicant loading encounters invalid records."""

    def __init__(self, errors: list[str], partial: list[Applicant]):
        super().__init__("Applicant loading failed")
        self.errors = errors
        self.partial = partial

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Applicant loading failed: {self.errors}"


def _atomic_write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class JsonlApplicantRepository:
    """One applicant JSON object per line.

    Records use either snake_case or the portal's camelCase field names; the
    ranking inputs live under a nested ``ranking`` object.
    """

    def __init__(self, path: str | Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[Applicant]:
        """Parse every record; a repeated id keeps its first occurrence."""
        applicants: list[Applicant] = []
        errors: list[str] = []
        seen: dict[str, int] = {}
        for idx, record in self._read_records():
            if isinstance(record, str):
                errors.append(f"line {idx}: invalid JSON ({record})")
                continue
            try:
                applicant = Applicant.model_validate(record)
            except ValidationError as exc:
                errors.append(f"line {idx}: {exc}")
                continue
            if applicant.applicant_id in seen:
                errors.append(
                    f"line {idx}: duplicate applicant id {applicant.applicant_id!r} "
                    f"(first seen on line {seen[applicant.applicant_id]})"
                )
                continue
            seen[applicant.applicant_id] = idx
            applicants.append(applicant)
        if errors:
            raise ApplicantLoadError(errors, applicants)
        return applicants

    def fetch_applicants(self) -> list[Applicant]:
        return self.load()

    def fetch_applicant(self, applicant_id: str) -> Applicant | None:
        for applicant in self.load():
            if applicant.applicant_id == applicant_id:
                return applicant
        return None

    def save_status(self, applicant_id: str, status: PersistedStatus) -> None:
        lines: list[str] = []
        found = False
        for _, record in self._read_records():
            if not found and isinstance(record, dict) and self._record_id(record) == applicant_id:
                key = "finalStatus" if "finalStatus" in record else "final_status"
                record[key] = status
                found = True
            if isinstance(record, str):
                raise UpstreamUnavailableError(f"Cannot rewrite {self._path}: corrupt record")
            lines.append(json.dumps(record, ensure_ascii=False))
        if not found:
            raise NotFoundError("applicant", applicant_id)
        try:
            _atomic_write(self._path, "\n".join(lines) + "\n")
        except OSError as exc:
            raise UpstreamUnavailableError(f"Cannot write {self._path}: {exc}") from exc

    def _read_records(self) -> list[tuple[int, Any]]:
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                raw_lines = handle.readlines()
        except OSError as exc:
            raise UpstreamUnavailableError(f"Cannot read {self._path}: {exc}") from exc

        records: list[tuple[int, Any]] = []
        for idx, line in enumerate(raw_lines, start=1):
            raw = line.strip()
            if not raw:
                continue
            try:
                records.append((idx, json.loads(raw)))
            except json.JSONDecodeError as exc:
                records.append((idx, str(exc)))
        return records

    @staticmethod
    def _record_id(record: dict[str, Any]) -> str | None:
        for key in ("applicant_id", "applicantId", "id"):
            if key in record:
                return str(record[key])
        return None


class JsonQuotaRepository:
    """Quota mapping stored as a single JSON object."""

    def __init__(self, path: str | Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict[str, Any] | None:
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise UpstreamUnavailableError(f"Cannot read {self._path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise UpstreamUnavailableError(f"Invalid quota JSON in {self._path}: {exc}") from exc
        if data is None:
            return None
        if not isinstance(data, dict):
            raise UpstreamUnavailableError(f"Quota file {self._path} must hold a JSON object")
        return data

    def persist(self, quotas: Mapping[str, int]) -> None:
        try:
            _atomic_write(
                self._path,
                json.dumps(dict(quotas), ensure_ascii=False, indent=2),
            )
        except OSError as exc:
            raise UpstreamUnavailableError(f"Cannot write {self._path}: {exc}") from exc
