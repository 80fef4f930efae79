"""Configuration de test pour pytest avec gestion des chemins.

Ce module ajoute la racine du projet au sys.path et fournit les fixtures communes
(record store mémoire, client de documents factice, orchestrateur).
"""

import os
import sys

import pytest

# Ensure project root is on sys.path so that
# imports like `from modsync...` resolve.
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from modsync.domain.publication import PublicationOrchestrator  # noqa: E402
from modsync.infra.records.memory_store import InMemoryRecordStore  # noqa: E402
from tests.fakes import FakeArtifactClient, RecordingObserver, SpyRecordStore  # noqa: E402


@pytest.fixture
def artifacts() -> FakeArtifactClient:
    """Client de documents factice renvoyant `https://docs/{module_id}`."""
    return FakeArtifactClient()


@pytest.fixture
def records() -> SpyRecordStore:
    """Record store mémoire instrumenté (comptage des appels, pannes injectables)."""
    return SpyRecordStore(InMemoryRecordStore())


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def orchestrator(artifacts, records, observer) -> PublicationOrchestrator:
    """Orchestrateur branché sur les doubles de test."""
    return PublicationOrchestrator(artifacts, records, observer=observer)
