"""
Record store en mémoire (utilisé pour dev/tests).

Stocke les documents dans un dict local `{chemin: champs}`, non persistant. Les écritures d'un
batch sont d'abord calculées hors du store puis appliquées sous verrou: un échec pendant la
préparation ne laisse aucune écriture partielle.
"""

from __future__ import annotations

import copy
import threading
from collections.abc import Mapping, Sequence
from typing import Any

from modsync.infra.records.base import (
    BatchEntry,
    RecordStore,
    check_fields,
    child_path,
    document_path,
    merge_fields,
    parent_of,
    resolve_server_timestamps,
    subcollection_path,
    utcnow,
)


class InMemoryRecordStore(RecordStore):
    """Store de documents en mémoire, atomique par appel."""

    name = "memory"

    def __init__(self) -> None:
        """Initialise une base mémoire vide."""
        self._db: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def merge_upsert(self, collection: str, document_id: str, fields: Mapping[str, Any]) -> None:
        path = document_path(collection, document_id)
        check_fields(fields)
        with self._lock:
            resolved = resolve_server_timestamps(fields, utcnow())
            self._db[path] = merge_fields(self._db.get(path), resolved)

    def batch_commit(
        self,
        collection: str,
        parent_id: str,
        subcollection: str,
        entries: Sequence[BatchEntry],
    ) -> None:
        base = subcollection_path(collection, parent_id, subcollection)
        with self._lock:
            now = utcnow()
            staged: dict[str, dict[str, Any]] = {}
            for document_id, fields in entries:
                path = child_path(base, document_id)
                check_fields(fields)
                current = staged.get(path, self._db.get(path))
                staged[path] = merge_fields(current, resolve_server_timestamps(fields, now))
            self._db.update(staged)

    def get(self, path: str) -> dict[str, Any] | None:
        doc = self._db.get(path)
        return copy.deepcopy(doc) if doc is not None else None

    def list_documents(self, collection_path: str) -> list[dict[str, Any]]:
        return [
            copy.deepcopy(self._db[path])
            for path in sorted(self._db)
            if parent_of(path) == collection_path
        ]

    def paths(self) -> list[str]:
        """Chemins de tous les documents (inspection en tests)."""
        return sorted(self._db)
