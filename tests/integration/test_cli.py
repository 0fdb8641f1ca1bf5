from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from ppdbrank.cli import app


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def student(student_id: str, score: int, major: str = "RPL", status: str = "PENDING") -> dict:
    return {
        "id": student_id,
        "fullName": f"Siswa {student_id}",
        "selectedMajor": major,
        "finalStatus": status,
        "ranking": {
            "mathScore": score,
            "indonesianScore": score,
            "englishScore": score,
            "scienceScore": score,
            "academicAchievement": "none",
            "nonAcademicAchievement": "none",
            "certificateScore": "none",
            "accreditation": "C",
        },
    }


@pytest.fixture
def workspace(tmp_path: Path) -> dict[str, Path]:
    applicants = tmp_path / "applicants.jsonl"
    applicants.write_text(
        "\n".join(
            json.dumps(item)
            for item in [
                student("S-1", 90, status="ACCEPTED"),
                student("S-2", 85, status="ACCEPTED"),
                student("S-3", 80, status="ACCEPTED"),
            ]
        ),
        encoding="utf-8",
    )
    quotas = tmp_path / "quotas.json"
    quotas.write_text(
        json.dumps({"TKJ": 72, "RPL": 2, "MM": 36, "TKR": 72, "TSM": 36, "AKL": 36, "OTKP": 36, "BDP": 36}),
        encoding="utf-8",
    )
    return {"applicants": applicants, "quotas": quotas, "root": tmp_path}


def test_rank_writes_output(runner: CliRunner, workspace: dict[str, Path]) -> None:
    output = workspace["root"] / "out" / "ranking.json"

    result = runner.invoke(
        app,
        [
            "rank",
            "--applicants",
            str(workspace["applicants"]),
            "--quotas",
            str(workspace["quotas"]),
            "--output",
            str(output),
        ],
    )

    assert result.exit_code == 0, result.output
    rendered = json.loads(output.read_text(encoding="utf-8"))
    entries = rendered["majors"]["RPL"]["entries"]
    assert [entry["status"] for entry in entries] == ["DITERIMA", "DITERIMA", "TIDAK_DITERIMA"]
    assert rendered["majors"]["RPL"]["cutoff_score"] == 85


def test_status_reports_drift(runner: CliRunner, workspace: dict[str, Path]) -> None:
    result = runner.invoke(
        app,
        [
            "status",
            "S-3",
            "--applicants",
            str(workspace["applicants"]),
            "--quotas",
            str(workspace["quotas"]),
        ],
    )

    assert result.exit_code == 0, result.output
    report = json.loads(result.stdout)
    assert report["live"]["status"] == "TIDAK_DITERIMA"
    assert report["comparison"]["needs_update"] is True


def test_status_unknown_applicant_fails(runner: CliRunner, workspace: dict[str, Path]) -> None:
    result = runner.invoke(
        app,
        ["status", "S-404", "--applicants", str(workspace["applicants"])],
    )

    assert result.exit_code == 1
    assert "NOT_FOUND" in result.output


def test_sync_apply_updates_file(runner: CliRunner, workspace: dict[str, Path]) -> None:
    audit = workspace["root"] / "audit.jsonl"

    result = runner.invoke(
        app,
        [
            "sync",
            "--applicants",
            str(workspace["applicants"]),
            "--quotas",
            str(workspace["quotas"]),
            "--apply",
            "--audit-log",
            str(audit),
        ],
    )

    assert result.exit_code == 0, result.output
    records = [json.loads(line) for line in workspace["applicants"].read_text(encoding="utf-8").splitlines()]
    statuses = {record["id"]: record["finalStatus"] for record in records}
    assert statuses == {"S-1": "ACCEPTED", "S-2": "ACCEPTED", "S-3": "REJECTED"}
    assert audit.exists()


def test_quota_set_rejects_invalid_and_keeps_file(runner: CliRunner, workspace: dict[str, Path]) -> None:
    before = workspace["quotas"].read_text(encoding="utf-8")

    result = runner.invoke(
        app,
        ["quota", "set", "RPL=10", "TKJ=-1", "--quotas", str(workspace["quotas"])],
    )

    assert result.exit_code == 1
    assert workspace["quotas"].read_text(encoding="utf-8") == before


def test_quota_set_and_reset(runner: CliRunner, workspace: dict[str, Path]) -> None:
    quotas = workspace["quotas"]

    updated = runner.invoke(app, ["quota", "set", "RPL=10", "--quotas", str(quotas)])
    assert updated.exit_code == 0, updated.output
    assert json.loads(quotas.read_text(encoding="utf-8"))["RPL"] == 10

    reset = runner.invoke(app, ["quota", "reset", "--quotas", str(quotas)])
    assert reset.exit_code == 0, reset.output
    assert json.loads(quotas.read_text(encoding="utf-8"))["RPL"] == 72


def test_quota_show_defaults(runner: CliRunner, tmp_path: Path) -> None:
    result = runner.invoke(app, ["quota", "show", "--quotas", str(tmp_path / "fresh.json")])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["quotas"]["TKJ"] == 72
    assert payload["statistics"]["total_capacity"] == 396


def test_quota_export_then_import(runner: CliRunner, workspace: dict[str, Path]) -> None:
    quotas = workspace["quotas"]
    table = workspace["root"] / "exports" / "quotas.csv"

    exported = runner.invoke(app, ["quota", "export", "--quotas", str(quotas), "--output", str(table)])
    assert exported.exit_code == 0, exported.output
    assert "RPL,Rekayasa Perangkat Lunak,2,1,3" in table.read_text(encoding="utf-8").splitlines()

    edited = table.read_text(encoding="utf-8").replace(
        "RPL,Rekayasa Perangkat Lunak,2,",
        "RPL,Rekayasa Perangkat Lunak,12,",
    )
    table.write_text(edited, encoding="utf-8")
    imported = runner.invoke(app, ["quota", "import", str(table), "--quotas", str(quotas)])

    assert imported.exit_code == 0, imported.output
    assert json.loads(quotas.read_text(encoding="utf-8"))["RPL"] == 12


def test_quota_suggest_prints_proposal(runner: CliRunner, workspace: dict[str, Path]) -> None:
    before = workspace["quotas"].read_text(encoding="utf-8")

    result = runner.invoke(
        app,
        [
            "quota",
            "suggest",
            "--applicants",
            str(workspace["applicants"]),
            "--quotas",
            str(workspace["quotas"]),
            "--target",
            "120",
        ],
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["demand"]["RPL"] == 3
    assert set(payload["quotas"]) == {"TKJ", "RPL", "MM", "TKR", "TSM", "AKL", "OTKP", "BDP"}
    assert workspace["quotas"].read_text(encoding="utf-8") == before


def test_rank_reports_unranked_applicants(runner: CliRunner, workspace: dict[str, Path]) -> None:
    with workspace["applicants"].open("a", encoding="utf-8") as handle:
        handle.write("\n" + json.dumps({"id": "S-9", "fullName": "Siswa S-9", "selectedMajor": "RPL"}))

    result = runner.invoke(
        app,
        ["rank", "--applicants", str(workspace["applicants"]), "--quotas", str(workspace["quotas"])],
    )

    assert result.exit_code == 0, result.output
    document = json.loads(result.stdout)
    assert document["metadata"]["excluded"] == ["S-9"]
    assert document["overall"]["total_excluded"] == 1
