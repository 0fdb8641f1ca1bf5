"""Typer CLI entrypoint for the admission engine."""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, List, NoReturn, Optional

import typer
import yaml

from .container import create_container
from .errors import AdmissionError
from .logging import configure_logging
from .pipeline import AdmissionService, AuditLogger, OutputWriter, build_ranking_document
from .schemas import QuotaUpdateResult, normalize_major_code

app = typer.Typer(help="PPDB admission ranking CLI.")
quota_app = typer.Typer(help="Inspect and change per-major quotas.")
app.add_typer(quota_app, name="quota")

ApplicantsOption = typer.Option(
    None, exists=True, readable=True, dir_okay=False, help="Applicants JSONL path."
)
QuotasOption = typer.Option(None, dir_okay=False, help="Quota JSON path (created when missing).")
ConfigOption = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path.")
LogLevelOption = typer.Option("WARNING", help="Log level for structured logging.")


def _load_settings(config: Optional[Path]) -> dict[str, Any]:
    if not config:
        return {}
    with config.open("r", encoding="utf-8") as handle:
        loaded = yaml.safe_load(handle) or {}
    if not isinstance(loaded, dict):
        raise typer.BadParameter("Config file must be a YAML object", param_name="config")
    return loaded


def _build_service(
    *,
    config: Optional[Path],
    applicants: Optional[Path],
    quotas: Optional[Path],
    log_level: str,
    audit_log: Optional[Path] = None,
) -> AdmissionService:
    settings = _load_settings(config)
    storage = dict(settings.get("storage") or {})
    if applicants:
        storage["applicants_path"] = str(applicants)
    if quotas:
        storage["quota_path"] = str(quotas)
    if storage:
        settings["storage"] = storage

    configure_logging(log_level)

    container = create_container(settings=settings)
    audit_logger = AuditLogger(audit_log) if audit_log else None
    return container.service(audit_logger=audit_logger)


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


def _fail(exc: AdmissionError) -> NoReturn:
    typer.echo(json.dumps(exc.to_dict(), ensure_ascii=False), err=True)
    raise typer.Exit(code=1)


@app.command()
def rank(
    applicants: Optional[Path] = ApplicantsOption,
    quotas: Optional[Path] = QuotasOption,
    output: Optional[Path] = typer.Option(None, dir_okay=False, help="Ranking JSON output path."),
    csv_output: Optional[Path] = typer.Option(None, "--csv", dir_okay=False, help="Ranking CSV output path."),
    config: Optional[Path] = ConfigOption,
    log_level: str = LogLevelOption,
) -> None:
    """Rank every applicant and apply the quota cutoff per major."""
    service = _build_service(config=config, applicants=applicants, quotas=quotas, log_level=log_level)
    try:
        rankings = service.compute_rankings()
        document = build_ranking_document(rankings, quotas=service.quota_store.snapshot())
    except AdmissionError as exc:
        _fail(exc)

    writer = OutputWriter()
    if csv_output:
        writer.write_csv(csv_output, rankings)
    if output:
        writer.write(output, document)
        overall = document["overall"]
        typer.echo(
            f"Ranked {overall['total_ranked']} applicants "
            f"({overall['total_accepted']} accepted). Results saved to {output}."
        )
    else:
        _echo_json(document)


@app.command()
def status(
    applicant_id: str = typer.Argument(..., help="Applicant identifier."),
    applicants: Optional[Path] = ApplicantsOption,
    quotas: Optional[Path] = QuotasOption,
    config: Optional[Path] = ConfigOption,
    log_level: str = LogLevelOption,
) -> None:
    """Compare an applicant's live status with the stored decision."""
    service = _build_service(config=config, applicants=applicants, quotas=quotas, log_level=log_level)
    try:
        report = service.compute_applicant_status(applicant_id)
    except AdmissionError as exc:
        _fail(exc)
    _echo_json(asdict(report))


@app.command()
def sync(
    applicants: Optional[Path] = ApplicantsOption,
    quotas: Optional[Path] = QuotasOption,
    major: Optional[str] = typer.Option(None, help="Only sync applicants of this major."),
    rank_min: Optional[int] = typer.Option(None, min=1, help="Lowest rank to sync."),
    rank_max: Optional[int] = typer.Option(None, min=1, help="Highest rank to sync."),
    force: bool = typer.Option(False, help="Rewrite statuses that already match."),
    apply: bool = typer.Option(False, "--apply", help="Write changes instead of a dry run."),
    audit_log: Optional[Path] = typer.Option(None, dir_okay=False, help="Audit log output (JSONL)."),
    config: Optional[Path] = ConfigOption,
    log_level: str = LogLevelOption,
) -> None:
    """Write live statuses back to the applicant store."""
    if major is not None:
        try:
            major = normalize_major_code(major)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_name="major") from exc
    rank_range = None
    if rank_min is not None or rank_max is not None:
        rank_range = (rank_min or 1, rank_max or 10**9)

    service = _build_service(
        config=config,
        applicants=applicants,
        quotas=quotas,
        log_level=log_level,
        audit_log=audit_log,
    )
    try:
        report = service.sync_statuses(
            major=major,
            rank_range=rank_range,
            force=force,
            dry_run=not apply,
        )
    except AdmissionError as exc:
        _fail(exc)

    payload = asdict(report)
    payload["by_status"] = report.by_status()
    _echo_json(payload)
    if report.failed:
        raise typer.Exit(code=1)


@quota_app.command("show")
def quota_show(
    quotas: Optional[Path] = QuotasOption,
    config: Optional[Path] = ConfigOption,
    log_level: str = LogLevelOption,
) -> None:
    """Print the live quota mapping with statistics."""
    service = _build_service(config=config, applicants=None, quotas=quotas, log_level=log_level)
    try:
        _echo_json(service.quota_overview())
    except AdmissionError as exc:
        _fail(exc)


@quota_app.command("set")
def quota_set(
    entries: List[str] = typer.Argument(..., help="MAJOR=CAPACITY pairs, e.g. RPL=80."),
    applicants: Optional[Path] = ApplicantsOption,
    quotas: Optional[Path] = QuotasOption,
    audit_log: Optional[Path] = typer.Option(None, dir_okay=False, help="Audit log output (JSONL)."),
    config: Optional[Path] = ConfigOption,
    log_level: str = LogLevelOption,
) -> None:
    """Update one or more quotas; nothing changes if any entry is invalid."""
    candidate = _parse_entries(entries)
    service = _build_service(
        config=config,
        applicants=applicants,
        quotas=quotas,
        log_level=log_level,
        audit_log=audit_log,
    )
    try:
        result = service.update_quota(candidate)
    except AdmissionError as exc:
        _fail(exc)
    _report_quota_result(result)


@quota_app.command("reset")
def quota_reset(
    quotas: Optional[Path] = QuotasOption,
    audit_log: Optional[Path] = typer.Option(None, dir_okay=False, help="Audit log output (JSONL)."),
    config: Optional[Path] = ConfigOption,
    log_level: str = LogLevelOption,
) -> None:
    """Restore the default quota table."""
    service = _build_service(
        config=config,
        applicants=None,
        quotas=quotas,
        log_level=log_level,
        audit_log=audit_log,
    )
    try:
        result = service.reset_quota()
    except AdmissionError as exc:
        _fail(exc)
    _report_quota_result(result)


@quota_app.command("export")
def quota_export(
    output: Optional[Path] = typer.Option(None, dir_okay=False, help="CSV output path."),
    quotas: Optional[Path] = QuotasOption,
    config: Optional[Path] = ConfigOption,
    log_level: str = LogLevelOption,
) -> None:
    """Write the quota table with reserve and total capacity as CSV."""
    service = _build_service(config=config, applicants=None, quotas=quotas, log_level=log_level)
    try:
        rendered = service.quota_store.export_csv()
    except AdmissionError as exc:
        _fail(exc)
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(rendered, encoding="utf-8")
        typer.echo(f"Quota table saved to {output}.")
    else:
        typer.echo(rendered, nl=False)


@quota_app.command("import")
def quota_import(
    source: Path = typer.Argument(..., exists=True, readable=True, dir_okay=False, help="Quota CSV path."),
    applicants: Optional[Path] = ApplicantsOption,
    quotas: Optional[Path] = QuotasOption,
    audit_log: Optional[Path] = typer.Option(None, dir_okay=False, help="Audit log output (JSONL)."),
    config: Optional[Path] = ConfigOption,
    log_level: str = LogLevelOption,
) -> None:
    """Apply a quota CSV; nothing changes if any row is invalid."""
    service = _build_service(
        config=config,
        applicants=applicants,
        quotas=quotas,
        log_level=log_level,
        audit_log=audit_log,
    )
    try:
        result = service.import_quotas_csv(source.read_text(encoding="utf-8"))
    except AdmissionError as exc:
        _fail(exc)
    _report_quota_result(result)


@quota_app.command("suggest")
def quota_suggest(
    applicants: Optional[Path] = ApplicantsOption,
    quotas: Optional[Path] = QuotasOption,
    target: Optional[int] = typer.Option(None, min=0, help="Total capacity to distribute."),
    config: Optional[Path] = ConfigOption,
    log_level: str = LogLevelOption,
) -> None:
    """Propose quotas proportional to first-choice demand without applying them."""
    service = _build_service(config=config, applicants=applicants, quotas=quotas, log_level=log_level)
    try:
        _echo_json(service.suggest_quotas(target_total=target))
    except AdmissionError as exc:
        _fail(exc)


def _parse_entries(entries: List[str]) -> dict[str, Any]:
    candidate: dict[str, Any] = {}
    for item in entries:
        code, sep, raw = item.partition("=")
        if not sep:
            raise typer.BadParameter(f"Expected MAJOR=CAPACITY, got {item!r}", param_name="entries")
        value: Any = raw.strip()
        try:
            value = int(value)
        except ValueError:
            pass  # left as text; quota validation reports it
        candidate[code.strip().upper()] = value
    return candidate


def _report_quota_result(result: QuotaUpdateResult) -> None:
    _echo_json(result.model_dump())
    if not result.applied:
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
