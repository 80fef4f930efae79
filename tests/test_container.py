"""Tests du conteneur: sélection des backends à partir de la configuration."""

from __future__ import annotations

import pytest

from modsync.core.container import Container, build_artifact_client, build_record_store
from modsync.core.settings import Settings
from modsync.domain.models import Module
from modsync.infra.artifacts.fake_deterministic import DeterministicArtifactClient
from modsync.infra.artifacts.http_client import HttpArtifactClient
from modsync.infra.records.memory_store import InMemoryRecordStore
from modsync.infra.records.sql_store import SQLRecordStore
from modsync.services.publication_observer import StructlogMetricsObserver


def test_default_backends() -> None:
    settings = Settings(ARTIFACT_BACKEND="http", RECORD_STORE_BACKEND="memory")
    assert isinstance(build_artifact_client(settings), HttpArtifactClient)
    assert isinstance(build_record_store(settings), InMemoryRecordStore)


def test_sql_backend_without_url_creates_schema() -> None:
    store = build_record_store(Settings(RECORD_STORE_BACKEND="sql", DATABASE_URL=None))
    assert isinstance(store, SQLRecordStore)
    store.merge_upsert("modules", "m1", {"a": 1})
    assert store.get("modules/m1") == {"a": 1}


def test_redis_backend_requires_url() -> None:
    with pytest.raises(RuntimeError):
        build_record_store(Settings(RECORD_STORE_BACKEND="redis", REDIS_URL=None))


@pytest.mark.parametrize("field,value", [("ARTIFACT_BACKEND", "ftp"), ("RECORD_STORE_BACKEND", "mongo")])
def test_unknown_backend_is_rejected(field: str, value: str) -> None:
    settings = Settings(**{field: value})
    with pytest.raises(ValueError):
        Container(settings=settings)


def test_container_wires_orchestrator_from_settings() -> None:
    settings = Settings(
        ARTIFACT_BACKEND="deterministic",
        RECORD_STORE_BACKEND="memory",
        DOCS_BASE_URL="https://docs.test/",
        ARTIFACT_TITLE_SUFFIX=" (doc)",
        ARTIFACT_DEFAULT_CONTENT="vide",
    )
    container = Container(settings=settings)
    assert isinstance(container.artifacts, DeterministicArtifactClient)
    assert isinstance(container.observer, StructlogMetricsObserver)

    result = container.orchestrator.publish(Module(id="m1", title="Intro"))

    assert result.reference == "https://docs.test/m1"
    assert container.artifacts.documents["m1"]["title"] == "Intro (doc)"
    assert container.artifacts.documents["m1"]["content"] == "vide"
    assert container.records.get("modules/m1")["content"] == "https://docs.test/m1"


def test_containers_do_not_share_state() -> None:
    settings = Settings(ARTIFACT_BACKEND="deterministic", RECORD_STORE_BACKEND="memory")
    a, b = Container(settings=settings), Container(settings=settings)
    a.orchestrator.publish(Module(id="m1"))
    assert b.records.get("modules/m1") is None
