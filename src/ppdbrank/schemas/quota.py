"""Quota validation and update payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class FieldError(BaseModel):
    """Single field-level validation problem."""

    field: str
    message: str

    model_config = ConfigDict(extra="forbid")


class QuotaValidation(BaseModel):
    """Outcome of validating a quota candidate."""

    is_valid: bool
    errors: list[FieldError] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


class QuotaStatistics(BaseModel):
    """Derived view over a quota mapping."""

    total_capacity: int
    per_major_capacity: dict[str, int]
    major_count: int
    average_capacity: float
    per_major_reserve: dict[str, int] = Field(default_factory=dict)
    total_reserve: int = 0
    total_capacity_with_reserve: int = 0

    model_config = ConfigDict(extra="forbid")


class QuotaUpdateResult(BaseModel):
    """Response of an update or reset request."""

    quotas: dict[str, int]
    validation: QuotaValidation
    applied: bool
    statistics: QuotaStatistics

    model_config = ConfigDict(extra="forbid")
