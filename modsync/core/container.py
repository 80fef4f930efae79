"""
Conteneur d'injection de dépendances.

Construit, à partir d'un objet `Settings`, le client de documents, le record store,
l'observateur de publication et l'orchestrateur. Aucun état global: chaque appelant construit
(ou reçoit) son propre conteneur.
"""

from __future__ import annotations

from modsync.core.settings import Settings, get_settings
from modsync.domain.publication import PublicationObserver, PublicationOrchestrator
from modsync.infra.artifacts.base import ArtifactClient
from modsync.infra.artifacts.fake_deterministic import DeterministicArtifactClient
from modsync.infra.artifacts.http_client import HttpArtifactClient
from modsync.infra.records.base import RecordStore
from modsync.infra.records.memory_store import InMemoryRecordStore
from modsync.infra.records.redis_store import RedisRecordStore
from modsync.infra.records.sql_store import SQLRecordStore
from modsync.services.publication_observer import StructlogMetricsObserver


def build_artifact_client(settings: Settings) -> ArtifactClient:
    """Sélectionne le client de documents selon `ARTIFACT_BACKEND`."""
    name = (settings.ARTIFACT_BACKEND or "http").lower()
    if name == "http":
        return HttpArtifactClient(
            base_url=settings.DOCS_BASE_URL,
            api_key=settings.DOCS_API_KEY,
            timeout_s=settings.DOCS_TIMEOUT_S,
        )
    if name == "deterministic":
        return DeterministicArtifactClient(base_url=settings.DOCS_BASE_URL)
    raise ValueError(f"invalid ARTIFACT_BACKEND: {name}")


def build_record_store(settings: Settings) -> RecordStore:
    """Sélectionne le record store selon `RECORD_STORE_BACKEND`."""
    name = (settings.RECORD_STORE_BACKEND or "memory").lower()
    if name == "memory":
        return InMemoryRecordStore()
    if name == "redis":
        if not settings.REDIS_URL:
            raise RuntimeError("REDIS_URL est requis quand RECORD_STORE_BACKEND=redis")
        return RedisRecordStore(url=settings.REDIS_URL, key_prefix=settings.REDIS_KEY_PREFIX)
    if name == "sql":
        return SQLRecordStore(url=settings.DATABASE_URL, create_schema=not settings.DATABASE_URL)
    raise ValueError(f"invalid RECORD_STORE_BACKEND: {name}")


class Container:
    """Assemble les composants de publication à partir de la configuration."""

    def __init__(
        self,
        settings: Settings | None = None,
        artifacts: ArtifactClient | None = None,
        records: RecordStore | None = None,
        observer: PublicationObserver | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.artifacts = artifacts or build_artifact_client(self.settings)
        self.records = records or build_record_store(self.settings)
        self.observer = observer or StructlogMetricsObserver()
        self.orchestrator = PublicationOrchestrator(
            self.artifacts,
            self.records,
            observer=self.observer,
            title_suffix=self.settings.ARTIFACT_TITLE_SUFFIX,
            default_content=self.settings.ARTIFACT_DEFAULT_CONTENT,
        )
