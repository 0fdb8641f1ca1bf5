from __future__ import annotations

from typing import Any

import pytest

from ppdbrank.core import RankingConfig, RankingEngine
from ppdbrank.errors import NotFoundError, QuotaValidationError
from ppdbrank.schemas import DEFAULT_QUOTAS, Applicant, RankingRecord


def build_applicant(applicant_id: str, score: float | None, **kwargs: Any) -> Applicant:
    defaults: dict[str, Any] = {
        "applicant_id": applicant_id,
        "full_name": f"Siswa {applicant_id}",
        "first_choice": "RPL",
    }
    if score is not None:
        defaults["ranking"] = RankingRecord(
            math_score=score,
            indonesian_score=score,
            english_score=score,
            science_score=score,
        )
    defaults.update(kwargs)
    return Applicant(**defaults)


def quotas(**overrides: int) -> dict[str, int]:
    return {**DEFAULT_QUOTAS, **overrides}


def test_quota_cutoff_scenario():
    applicants = [
        build_applicant("S-1", 85),
        build_applicant("S-2", 80),
        build_applicant("S-3", 90),
    ]

    result = RankingEngine().rank(applicants, quotas(RPL=2))
    ranking = result["RPL"]

    assert [entry.applicant_id for entry in ranking.entries] == ["S-3", "S-1", "S-2"]
    assert [entry.rank for entry in ranking.entries] == [1, 2, 3]
    assert [entry.status for entry in ranking.entries] == [
        "DITERIMA",
        "DITERIMA",
        "TIDAK_DITERIMA",
    ]
    assert ranking.cutoff_score == 85


def test_equal_scores_break_ties_by_applicant_id():
    applicants = [
        build_applicant("S-9", 75),
        build_applicant("S-2", 75),
        build_applicant("S-5", 75),
    ]

    forward = RankingEngine().rank(applicants, quotas(RPL=1))["RPL"]
    backward = RankingEngine().rank(list(reversed(applicants)), quotas(RPL=1))["RPL"]

    assert [entry.applicant_id for entry in forward.entries] == ["S-2", "S-5", "S-9"]
    assert forward.entries == backward.entries
    assert forward.entries[0].status == "DITERIMA"


@pytest.mark.parametrize("quota", [0, 1, 3, 5, 10])
def test_accepted_count_is_min_of_quota_and_applicants(quota: int):
    applicants = [build_applicant(f"S-{idx}", 60 + idx) for idx in range(5)]

    ranking = RankingEngine().rank(applicants, quotas(RPL=quota))["RPL"]

    assert len(ranking.with_status("DITERIMA")) == min(quota, 5)
    assert sorted(entry.rank for entry in ranking.entries) == list(range(1, 6))
    scores = [entry.total_score for entry in ranking.entries]
    assert all(scores[i] >= scores[i + 1] for i in range(len(scores) - 1))


def test_zero_quota_rejects_everyone():
    applicants = [build_applicant("S-1", 99), build_applicant("S-2", 98)]

    ranking = RankingEngine().rank(applicants, quotas(RPL=0))["RPL"]

    assert {entry.status for entry in ranking.entries} == {"TIDAK_DITERIMA"}
    assert ranking.cutoff_score == 0


def test_applicants_without_ranking_are_excluded_not_rejected():
    applicants = [
        build_applicant("S-1", 70),
        build_applicant("S-2", None),
        build_applicant("S-3", 65),
    ]

    result = RankingEngine().rank(applicants, quotas(RPL=1))

    assert result.excluded == ("S-2",)
    assert result.locate("S-2") is None
    assert [entry.rank for entry in result["RPL"].entries] == [1, 2]


def test_every_configured_major_is_present_even_when_empty():
    result = RankingEngine().rank([build_applicant("S-1", 70)], quotas())

    assert set(result.majors) == set(DEFAULT_QUOTAS)
    assert result["MM"].entries == ()
    assert result["MM"].cutoff_score == 0
    assert result.as_mapping()["MM"] == []


def test_partitions_use_first_choice_only():
    applicants = [
        build_applicant("S-1", 70, first_choice="TKJ", second_choice="RPL"),
        build_applicant("S-2", 80, first_choice="RPL", second_choice="TKJ"),
    ]

    result = RankingEngine().rank(applicants, quotas())

    assert [entry.applicant_id for entry in result["TKJ"].entries] == ["S-1"]
    assert [entry.applicant_id for entry in result["RPL"].entries] == ["S-2"]


def test_major_missing_from_quotas_excludes_applicant():
    applicants = [build_applicant("S-1", 70, first_choice="BDP")]
    partial = {"RPL": 3}

    result = RankingEngine().rank(applicants, partial)

    assert result.excluded == ("S-1",)
    assert list(result.majors) == ["RPL"]


def test_waitlist_band_only_when_configured():
    applicants = [build_applicant(f"S-{idx}", 90 - idx) for idx in range(4)]

    default = RankingEngine().rank(applicants, quotas(RPL=2))["RPL"]
    banded = RankingEngine(config=RankingConfig(waitlist_ratio=0.5)).rank(
        applicants, quotas(RPL=2)
    )["RPL"]

    assert "CADANGAN" not in {entry.status for entry in default.entries}
    assert [entry.status for entry in banded.entries] == [
        "DITERIMA",
        "DITERIMA",
        "CADANGAN",
        "TIDAK_DITERIMA",
    ]
    assert banded.cutoff_score == 89


def test_negative_waitlist_ratio_is_rejected():
    with pytest.raises(ValueError):
        RankingConfig(waitlist_ratio=-0.1)


def test_unknown_major_lookup_raises_not_found():
    result = RankingEngine().rank([], quotas())

    with pytest.raises(NotFoundError) as exc:
        result["XYZ"]
    assert exc.value.code == "NOT_FOUND"


def test_statistics_and_overall_ranking():
    applicants = [
        build_applicant("S-1", 90),
        build_applicant("S-2", 70),
        build_applicant("S-3", 80, first_choice="TKJ"),
    ]

    result = RankingEngine().rank(applicants, quotas(RPL=1, TKJ=4))
    rpl = result.statistics()["RPL"]
    overall = result.overall_statistics()

    assert rpl.total_applicants == 2
    assert rpl.accepted == 1
    assert rpl.rejected == 1
    assert rpl.cutoff_score == 90
    assert rpl.highest_score == 90
    assert rpl.lowest_score == 70
    assert rpl.average_score == 80
    assert rpl.competition_ratio == 2.0
    assert rpl.difficulty == "easy"
    assert result.statistics()["TKJ"].difficulty == "very_easy"
    assert [entry.applicant_id for entry in result.overall_ranking()] == ["S-1", "S-3", "S-2"]
    assert result.overall_rank("S-3") == 2
    assert result.top_performers(1)[0].applicant_id == "S-1"
    assert overall.total_ranked == 3
    assert overall.total_accepted == 2
    assert overall.highest_score == 90
    assert overall.lowest_score == 70
    assert [entry.applicant_id for entry in result.with_status("DITERIMA")] == ["S-1", "S-3"]
    assert [entry.applicant_id for entry in result.with_status("TIDAK_DITERIMA")] == ["S-2"]
    assert result.with_status("CADANGAN") == []


def test_repeated_applicant_id_takes_one_seat():
    applicants = [
        build_applicant("S-1", 90),
        build_applicant("S-1", 88),
        build_applicant("S-2", 85),
    ]

    result = RankingEngine().rank(applicants, quotas(RPL=2))

    assert [(entry.applicant_id, entry.rank, entry.status) for entry in result["RPL"].entries] == [
        ("S-1", 1, "DITERIMA"),
        ("S-2", 2, "DITERIMA"),
    ]
    assert result["RPL"].entries[0].total_score == 90


@pytest.mark.parametrize("value", [2.9, "2", -1, True, None])
def test_malformed_quota_values_are_rejected(value):
    with pytest.raises(QuotaValidationError) as exc:
        RankingEngine().rank([build_applicant("S-1", 90)], {**DEFAULT_QUOTAS, "RPL": value})

    assert exc.value.code == "VALIDATION_ERROR"
    assert [error.field for error in exc.value.validation.errors] == ["RPL"]
