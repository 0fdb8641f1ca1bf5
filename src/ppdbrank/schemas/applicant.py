"""Applicant and ranking record schemas."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)
from pydantic.alias_generators import to_camel

from .majors import normalize_major_code

AdmissionStatus = Literal["DITERIMA", "CADANGAN", "TIDAK_DITERIMA"]
PersistedStatus = Literal["PENDING", "ACCEPTED", "REJECTED"]

_LEGACY_STATUSES: dict[str, str] = {
    "APPROVED": "ACCEPTED",
    "WAITLIST": "PENDING",
}


class RankingRecord(BaseModel):
    """Raw admission inputs for one applicant.

    ``total_score`` is derived on every access; a stored total in the
    incoming payload is ignored.
    """

    math_score: float | None = Field(default=None, ge=0, le=100)
    indonesian_score: float | None = Field(default=None, ge=0, le=100)
    english_score: float | None = Field(default=None, ge=0, le=100)
    science_score: float | None = Field(default=None, ge=0, le=100)
    academic_achievement: str = "none"
    non_academic_achievement: str = "none"
    certificate: str = Field(
        default="none",
        validation_alias=AliasChoices("certificate", "certificateScore", "certificate_score"),
    )
    accreditation: str = ""

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @field_validator(
        "academic_achievement",
        "non_academic_achievement",
        "certificate",
        "accreditation",
        mode="before",
    )
    @classmethod
    def _blank_label(cls, value: Any) -> Any:
        return "" if value is None else value

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_score(self) -> float:
        # core imports schemas, so resolve the calculator at call time
        from ..core.scoring import DEFAULT_CALCULATOR

        return DEFAULT_CALCULATOR.total(self)


class Applicant(BaseModel):
    """Registrant competing for one major."""

    applicant_id: str = Field(
        validation_alias=AliasChoices("applicant_id", "applicantId", "id"),
        min_length=1,
    )
    full_name: str = ""
    nisn: str | None = None
    first_choice: str = Field(
        validation_alias=AliasChoices("first_choice", "firstChoice", "selectedMajor"),
    )
    second_choice: str | None = None
    third_choice: str | None = None
    final_status: PersistedStatus = "PENDING"
    ranking: RankingRecord | None = None

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @field_validator("first_choice", mode="before")
    @classmethod
    def _first_choice(cls, value: Any) -> str:
        return normalize_major_code(value)

    @field_validator("second_choice", "third_choice", mode="before")
    @classmethod
    def _other_choices(cls, value: Any) -> str | None:
        if value is None or str(value).strip() == "":
            return None
        return normalize_major_code(value)

    @field_validator("final_status", mode="before")
    @classmethod
    def _final_status(cls, value: Any) -> Any:
        if value is None:
            return "PENDING"
        normalized = str(value).strip().upper()
        return _LEGACY_STATUSES.get(normalized, normalized)

    @property
    def has_complete_ranking(self) -> bool:
        return self.ranking is not None

    @property
    def preferences(self) -> list[str]:
        return [
            choice
            for choice in (self.first_choice, self.second_choice, self.third_choice)
            if choice is not None
        ]
