"""Pydantic configuration schema for CLI YAML input."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RankingSettings(BaseModel):
    waitlist_ratio: float = Field(default=0.0, ge=0.0)

    model_config = ConfigDict(extra="forbid")


class QuotaSettings(BaseModel):
    max_capacity: int | None = Field(default=None, ge=0)
    small_capacity_warning: int | None = None
    large_capacity_warning: int | None = None
    total_low_warning: int | None = None
    total_high_warning: int | None = None
    volume_low_ratio: float | None = None
    volume_high_ratio: float | None = None
    reserve_ratio: float | None = Field(default=None, ge=0.0)
    defaults: dict[str, int] | None = None

    model_config = ConfigDict(extra="forbid")


class StorageSettings(BaseModel):
    applicants_path: Path | None = None
    quota_path: Path | None = None

    model_config = ConfigDict(extra="forbid")


class AppConfig(BaseModel):
    ranking: RankingSettings = Field(default_factory=RankingSettings)
    quota: QuotaSettings = Field(default_factory=QuotaSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)

    model_config = ConfigDict(extra="forbid")

    def to_settings(self) -> dict[str, Any]:
        settings: dict[str, Any] = {}
        ranking = self.ranking.model_dump(exclude_defaults=True)
        if ranking:
            settings["ranking"] = ranking
        quota = self.quota.model_dump(exclude_none=True)
        if quota:
            settings["quota"] = quota
        storage = self.storage.model_dump(exclude_none=True)
        if storage:
            settings["storage"] = storage
        return settings


def load_config(raw: Any) -> AppConfig:
    if raw is None:
        raw = {}
    return AppConfig.model_validate(raw)
