"""Dependency injection container for the admission engine."""

from __future__ import annotations

from typing import Any

from dependency_injector import containers, providers

from .adapters import (
    InMemoryApplicantRepository,
    InMemoryQuotaRepository,
    JsonlApplicantRepository,
    JsonQuotaRepository,
)
from .core import (
    QuotaConfig,
    QuotaStore,
    RankingConfig,
    RankingEngine,
    ScoreCalculator,
    StatusReconciler,
)
from .pipeline import AdmissionService
from .schemas.config import load_config


class AdmissionContainer(containers.DeclarativeContainer):
    """Dependency-injector container definition."""

    applicant_repository = providers.Singleton(InMemoryApplicantRepository)
    quota_repository = providers.Singleton(InMemoryQuotaRepository)

    score_calculator = providers.Singleton(ScoreCalculator)
    ranking_engine = providers.Singleton(RankingEngine, calculator=score_calculator)
    reconciler = providers.Singleton(StatusReconciler)

    quota_store = providers.Singleton(QuotaStore, repository=quota_repository)

    service = providers.Factory(
        AdmissionService,
        engine=ranking_engine,
        reconciler=reconciler,
        quota_store=quota_store,
        applicants=applicant_repository,
    )


def create_container(*, settings: dict[str, Any] | None = None) -> AdmissionContainer:
    """Instantiate container with optional overrides."""

    container = AdmissionContainer()

    if not settings:
        return container

    app_config = load_config(settings)

    storage = app_config.storage
    if storage.applicants_path is not None:
        container.applicant_repository.override(
            providers.Singleton(JsonlApplicantRepository, storage.applicants_path)
        )
    if storage.quota_path is not None:
        container.quota_repository.override(
            providers.Singleton(JsonQuotaRepository, storage.quota_path)
        )

    if "waitlist_ratio" in app_config.ranking.model_fields_set:
        ranking_config = RankingConfig(waitlist_ratio=app_config.ranking.waitlist_ratio)
        container.ranking_engine.override(
            providers.Singleton(
                RankingEngine,
                calculator=container.score_calculator,
                config=ranking_config,
            )
        )

    quota_settings = app_config.quota.model_dump(exclude_none=True)
    if quota_settings:
        quota_config = QuotaConfig(**quota_settings)
        container.quota_store.override(
            providers.Singleton(
                QuotaStore,
                repository=container.quota_repository,
                config=quota_config,
            )
        )

    return container
