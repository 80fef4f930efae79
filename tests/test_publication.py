# ============================================================
# Tests : tests/test_publication.py
# Objet  : Séquence artifact -> metadata -> sections et ses échecs.
# ============================================================
"""Tests de l'orchestrateur de publication.

Vérifie l'ordre des étapes, l'idempotence d'une republication, l'absence d'écriture quand le
service de documents échoue et l'étiquetage des échecs par étape.
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from modsync.domain.errors import (
    FailureKind,
    PublicationFailure,
    ServiceFailure,
    Stage,
    TransportFailure,
    Unavailable,
    WriteConflict,
)
from modsync.domain.models import Module, Section
from modsync.domain.publication import PublicationOrchestrator
from modsync.infra.records.memory_store import InMemoryRecordStore
from tests.fakes import FakeArtifactClient, SpyRecordStore


def _intro() -> tuple[Module, list[Section]]:
    module = Module(id="m1", title="Intro", content="Hello")
    sections = [Section(order=0, fields={"text": "a"}), Section(order=1, fields={"text": "b"})]
    return module, sections


def test_publish_writes_metadata_and_sections(orchestrator, records, artifacts) -> None:
    """Scénario A: référence stockée dans `content`, une section par position."""
    module, sections = _intro()
    result = orchestrator.publish(module, sections)

    assert result.reference == "https://docs/m1"
    assert result.section_ids == ("section-0", "section-1")
    stored = records.get("modules/m1")
    assert stored is not None
    assert stored["content"] == "https://docs/m1"
    assert stored["title"] == "Intro"
    assert stored["id"] == "m1"
    assert isinstance(stored["createdAt"], datetime)
    assert isinstance(stored["updatedAt"], datetime)
    s0 = records.get("modules/m1/sections/section-0")
    s1 = records.get("modules/m1/sections/section-1")
    assert s0 == {"text": "a", "order": 0, "id": "section-0"}
    assert s1 == {"text": "b", "order": 1, "id": "section-1"}
    assert artifacts.calls == [("m1", "Intro Notes", "Hello")]


def test_artifact_service_failure_leaves_store_untouched(records, observer) -> None:
    """Scénario B: échec à l'étape artifact, aucun document `modules/m1`."""
    artifacts = FakeArtifactClient(error=ServiceFailure("boom", status_code=500, body="oops"))
    orch = PublicationOrchestrator(artifacts, records, observer=observer)
    module, sections = _intro()

    with pytest.raises(PublicationFailure) as excinfo:
        orch.publish(module, sections)

    failure = excinfo.value
    assert failure.stage is Stage.ARTIFACT
    assert failure.kind is FailureKind.SERVICE
    assert failure.context["status_code"] == 500
    assert failure.context["module_id"] == "m1"
    assert not failure.retryable
    assert records.get("modules/m1") is None
    assert records.merge_calls == []
    assert records.batch_calls == []
    assert records.inner.paths() == []


def test_artifact_transport_failure_is_retryable(records) -> None:
    artifacts = FakeArtifactClient(error=TransportFailure("timeout"))
    orch = PublicationOrchestrator(artifacts, records)
    with pytest.raises(PublicationFailure) as excinfo:
        orch.publish(Module(id="m1", title="t", content="c"))
    assert excinfo.value.kind is FailureKind.TRANSPORT
    assert excinfo.value.retryable
    assert records.merge_calls == []


def test_empty_module_id_fails_without_calls(orchestrator, artifacts, records) -> None:
    """Scénario C: InvalidRequest immédiat, aucun collaborateur appelé."""
    with pytest.raises(PublicationFailure) as excinfo:
        orchestrator.publish(Module(id="", title="Intro", content="Hello"), [])

    assert excinfo.value.kind is FailureKind.INVALID_REQUEST
    assert excinfo.value.stage is Stage.ARTIFACT
    assert artifacts.calls == []
    assert records.merge_calls == []
    assert records.batch_calls == []


def test_module_id_with_slash_fails_without_calls(orchestrator, artifacts, records) -> None:
    """Un identifiant que le record store refuserait est rejeté avant le service de documents."""
    with pytest.raises(PublicationFailure) as excinfo:
        orchestrator.publish(Module(id="a/b", title="t", content="c"), [])

    assert excinfo.value.kind is FailureKind.INVALID_REQUEST
    assert excinfo.value.stage is Stage.ARTIFACT
    assert excinfo.value.context["module_id"] == "a/b"
    assert artifacts.calls == []
    assert records.merge_calls == []


@pytest.mark.parametrize(
    "sections",
    [
        [Section(order=1), Section(order=1)],
        [Section(order=-1)],
        [Section(order="2")],  # type: ignore[arg-type]
    ],
)
def test_invalid_section_orders_are_rejected_upfront(orchestrator, artifacts, sections) -> None:
    with pytest.raises(PublicationFailure) as excinfo:
        orchestrator.publish(Module(id="m1"), sections)
    assert excinfo.value.kind is FailureKind.INVALID_REQUEST
    assert artifacts.calls == []


def test_empty_sections_skip_batch(orchestrator, records, observer) -> None:
    """Scénario D: métadonnées écrites, aucun batch vide émis."""
    result = orchestrator.publish(Module(id="m1", title="Intro", content="Hello"), [])

    assert result.section_ids == ()
    assert len(records.merge_calls) == 1
    assert records.batch_calls == []
    assert ("started", Stage.SECTIONS) not in observer.events


def test_republish_is_idempotent(orchestrator, records, artifacts) -> None:
    """P1: deux publications identiques donnent le même état observable."""
    module, sections = _intro()
    orchestrator.publish(module, sections)
    first_paths = records.inner.paths()
    first_sections = records.list_documents("modules/m1/sections")

    orchestrator.publish(module, sections)

    assert records.inner.paths() == first_paths
    assert records.list_documents("modules/m1/sections") == first_sections
    assert len(artifacts.documents) == 1
    # Politique always-refresh: le service est rappelé à chaque publication
    assert len(artifacts.calls) == 2


def test_section_key_is_derived_from_order(orchestrator, records) -> None:
    """P3: même `order` -> même record, écrasé plutôt que dupliqué."""
    orchestrator.publish(Module(id="m1"), [Section(order=3, fields={"text": "v1"})])
    orchestrator.publish(Module(id="m1"), [Section(order=3, fields={"text": "v2"})])

    docs = records.list_documents("modules/m1/sections")
    assert docs == [{"text": "v2", "order": 3, "id": "section-3"}]


def test_stale_sections_are_not_pruned(orchestrator, records) -> None:
    orchestrator.publish(Module(id="m1"), [Section(order=0), Section(order=1)])
    orchestrator.publish(Module(id="m1"), [Section(order=0)])
    ids = [d["id"] for d in records.list_documents("modules/m1/sections")]
    assert ids == ["section-0", "section-1"]


def test_content_is_replaced_by_reference(orchestrator, records) -> None:
    """P4: le store ne contient jamais le corps brut."""
    orchestrator.publish(Module(id="m1", title="T", content="raw body"), [])
    assert records.get("modules/m1")["content"] == "https://docs/m1"


def test_merge_keeps_unrelated_fields(orchestrator, records) -> None:
    """P5: un champ existant absent de l'écriture survit."""
    records.inner.merge_upsert("modules", "m1", {"owner": "alice", "title": "old"})
    orchestrator.publish(Module(id="m1", title="new", content="c"), [])

    stored = records.get("modules/m1")
    assert stored["owner"] == "alice"
    assert stored["title"] == "new"


def test_caller_created_at_is_preserved(orchestrator, records) -> None:
    created = datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)
    orchestrator.publish(Module(id="m1", created_at=created), [])
    stored = records.get("modules/m1")
    assert stored["createdAt"] == created
    assert stored["updatedAt"] > created


def test_default_content_and_title_suffix(records) -> None:
    artifacts = FakeArtifactClient()
    orch = PublicationOrchestrator(
        artifacts, records, title_suffix=" (notes)", default_content="(vide)"
    )
    orch.publish(Module(id="m1", title="Intro", content=""), [])
    assert artifacts.calls == [("m1", "Intro (notes)", "(vide)")]


def test_extra_fields_are_written(orchestrator, records) -> None:
    orchestrator.publish(Module(id="m1", title="T", extra={"level": 2, "content": "ignored"}), [])
    stored = records.get("modules/m1")
    assert stored["level"] == 2
    assert stored["content"] == "https://docs/m1"


def test_metadata_failure_is_tagged(orchestrator, records, artifacts, observer) -> None:
    records.merge_error = Unavailable("store down")
    with pytest.raises(PublicationFailure) as excinfo:
        orchestrator.publish(*_intro())

    failure = excinfo.value
    assert failure.stage is Stage.METADATA
    assert failure.kind is FailureKind.UNAVAILABLE
    assert failure.retryable
    # Le document existe déjà côté service; pas de batch de sections
    assert "m1" in artifacts.documents
    assert records.batch_calls == []
    assert observer.events[-1] == ("failed", Stage.METADATA)


def test_sections_failure_is_tagged(orchestrator, records) -> None:
    records.batch_error = WriteConflict("conflict")
    with pytest.raises(PublicationFailure) as excinfo:
        orchestrator.publish(*_intro())

    failure = excinfo.value
    assert failure.stage is Stage.SECTIONS
    assert failure.kind is FailureKind.WRITE_CONFLICT
    assert failure.context["section_count"] == 2
    assert records.get("modules/m1")["content"] == "https://docs/m1"
    assert records.list_documents("modules/m1/sections") == []


def test_retry_after_sections_failure_converges(orchestrator, records) -> None:
    records.batch_error = Unavailable("flaky")
    with pytest.raises(PublicationFailure):
        orchestrator.publish(*_intro())
    records.batch_error = None
    orchestrator.publish(*_intro())
    assert len(records.list_documents("modules/m1/sections")) == 2


def test_observer_sees_stage_boundaries(orchestrator, observer) -> None:
    orchestrator.publish(*_intro())
    assert observer.events == [
        ("started", Stage.ARTIFACT),
        ("succeeded", Stage.ARTIFACT),
        ("started", Stage.METADATA),
        ("succeeded", Stage.METADATA),
        ("started", Stage.SECTIONS),
        ("succeeded", Stage.SECTIONS),
    ]


def test_unclassified_errors_propagate(records) -> None:
    artifacts = FakeArtifactClient(error=KeyError("bug"))
    orch = PublicationOrchestrator(artifacts, records)
    with pytest.raises(KeyError):
        orch.publish(Module(id="m1"))


def test_default_store_roundtrip_without_spy() -> None:
    store = InMemoryRecordStore()
    orch = PublicationOrchestrator(FakeArtifactClient(), store)
    orch.publish(Module(id="m2", title="x", content="y"), [Section(order=0, fields={"t": 1})])
    assert store.paths() == ["modules/m2", "modules/m2/sections/section-0"]
