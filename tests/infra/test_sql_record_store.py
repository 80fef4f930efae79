# ============================================================
# Tests : tests/infra/test_sql_record_store.py
# Objet  : Record store SQLAlchemy (sqlite mémoire).
# ============================================================

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from modsync.domain.errors import InvalidArgument, Unavailable, WriteConflict
from modsync.domain.models import Module, Section
from modsync.domain.publication import PublicationOrchestrator
from modsync.infra.records.base import SERVER_TIMESTAMP
from modsync.infra.records.sql_store import SQLRecordStore
from modsync.infra.repo.db import get_engine
from tests.fakes import FakeArtifactClient


def _store() -> SQLRecordStore:
    """Crée un store sur une base SQLite en mémoire, schéma créé."""
    return SQLRecordStore(engine=get_engine("sqlite+pysqlite:///:memory:"), create_schema=True)


def test_merge_upsert_and_get() -> None:
    store = _store()
    store.merge_upsert("modules", "m1", {"title": "a", "owner": "alice"})
    store.merge_upsert("modules", "m1", {"title": "b"})
    assert store.get("modules/m1") == {"title": "b", "owner": "alice"}
    assert store.get("modules/missing") is None


def test_timestamps_are_stored_as_iso_strings() -> None:
    store = _store()
    created = datetime(2024, 1, 1, tzinfo=UTC)
    store.merge_upsert("modules", "m1", {"createdAt": created, "updatedAt": SERVER_TIMESTAMP})
    doc = store.get("modules/m1")
    assert doc["createdAt"] == "2024-01-01T00:00:00+00:00"
    assert datetime.fromisoformat(doc["updatedAt"]) > created


def test_batch_commit_and_listing() -> None:
    store = _store()
    store.batch_commit(
        "modules", "m1", "sections", [("section-1", {"order": 1}), ("section-0", {"order": 0})]
    )
    docs = store.list_documents("modules/m1/sections")
    assert docs == [{"order": 0}, {"order": 1}]
    assert store.list_documents("modules/m2/sections") == []


def test_batch_commit_rolls_back_on_bad_entry() -> None:
    store = _store()
    with pytest.raises(InvalidArgument):
        store.batch_commit("modules", "m1", "sections", [("section-0", {"v": object()})])
    assert store.list_documents("modules/m1/sections") == []


def test_integrity_error_is_write_conflict() -> None:
    store = _store()
    err = IntegrityError("INSERT", {}, Exception("duplicate key"))
    with patch("sqlalchemy.orm.Session.commit", side_effect=err):
        with pytest.raises(WriteConflict):
            store.merge_upsert("modules", "m1", {"a": 1})


def test_operational_error_is_unavailable() -> None:
    store = _store()
    err = OperationalError("SELECT", {}, Exception("database is locked"))
    with patch("sqlalchemy.orm.Session.commit", side_effect=err):
        with pytest.raises(Unavailable):
            store.merge_upsert("modules", "m1", {"a": 1})


def test_orchestrator_on_sql_store() -> None:
    store = _store()
    orch = PublicationOrchestrator(FakeArtifactClient(), store)
    orch.publish(Module(id="m1", title="Intro", content="Hello"), [Section(order=0, fields={"text": "a"})])
    assert store.get("modules/m1")["content"] == "https://docs/m1"
    assert store.get("modules/m1/sections/section-0") == {"text": "a", "order": 0, "id": "section-0"}


def test_concurrent_update_is_write_conflict(tmp_path, monkeypatch) -> None:
    """Une écriture validée entre la lecture et la mise à jour n'est jamais écrasée."""
    engine = get_engine(f"sqlite+pysqlite:///{tmp_path / 'records.db'}")
    writer = SQLRecordStore(engine=engine, create_schema=True)
    other = SQLRecordStore(engine=engine)
    writer.merge_upsert("modules", "m1", {"title": "t"})

    original_get = Session.get
    interleaved = {"done": False}

    def _get_then_concurrent_write(self, entity, ident, **kwargs):
        row = original_get(self, entity, ident, **kwargs)
        if not interleaved["done"]:
            interleaved["done"] = True
            other.merge_upsert("modules", "m1", {"owner": "bob"})
        return row

    monkeypatch.setattr(Session, "get", _get_then_concurrent_write)
    with pytest.raises(WriteConflict):
        writer.merge_upsert("modules", "m1", {"level": 2})

    assert writer.get("modules/m1") == {"title": "t", "owner": "bob"}

    # Relance après conflit: les deux écritures sont conservées
    writer.merge_upsert("modules", "m1", {"level": 2})
    assert writer.get("modules/m1") == {"title": "t", "owner": "bob", "level": 2}
