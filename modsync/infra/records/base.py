"""Interface de base du record store et utilitaires partagés par les adaptateurs.

Chemins
-------
- document: `{collection}/{document_id}`
- sous-collection: `{collection}/{parent_id}/{subcollection}/{document_id}`

Sémantique
----------
- `merge_upsert` fusionne les champs fournis dans le document existant (les champs absents de
  l'écriture sont conservés; les sous-dicts sont fusionnés récursivement).
- `batch_commit` applique toutes les entrées ou aucune.
- `SERVER_TIMESTAMP` est résolu en date UTC au moment du commit.
"""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

from modsync.domain.errors import InvalidArgument


class _ServerTimestamp:
    """Sentinelle: horodatage résolu par le store au moment de l'écriture."""

    _instance: _ServerTimestamp | None = None

    def __new__(cls) -> _ServerTimestamp:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()

BatchEntry = tuple[str, Mapping[str, Any]]


def utcnow() -> datetime:
    return datetime.now(UTC)


def is_valid_segment(segment: object) -> bool:
    """Un segment de chemin est une chaîne non vide sans `/`."""
    return isinstance(segment, str) and bool(segment) and "/" not in segment


def _check_segment(segment: str, what: str) -> str:
    if not is_valid_segment(segment):
        raise InvalidArgument(f"invalid {what}: {segment!r}", {what: segment})
    return segment


def document_path(collection: str, document_id: str) -> str:
    """Chemin `{collection}/{document_id}` après validation des segments."""
    return f"{_check_segment(collection, 'collection')}/{_check_segment(document_id, 'document_id')}"


def subcollection_path(collection: str, parent_id: str, subcollection: str) -> str:
    """Chemin `{collection}/{parent_id}/{subcollection}`."""
    return "/".join(
        (
            _check_segment(collection, "collection"),
            _check_segment(parent_id, "parent_id"),
            _check_segment(subcollection, "subcollection"),
        )
    )


def child_path(collection_path: str, document_id: str) -> str:
    """Chemin d'un document sous une (sous-)collection déjà validée."""
    return f"{collection_path}/{_check_segment(document_id, 'document_id')}"


def parent_of(path: str) -> str:
    """Chemin de la collection contenant le document `path`."""
    return path.rsplit("/", 1)[0]


def check_fields(fields: Mapping[str, Any]) -> None:
    if not isinstance(fields, Mapping):
        raise InvalidArgument("fields must be a mapping")
    for key in fields:
        if not isinstance(key, str) or not key:
            raise InvalidArgument(f"invalid field name: {key!r}")


def resolve_server_timestamps(value: Any, now: datetime) -> Any:
    """Remplace récursivement `SERVER_TIMESTAMP` par `now`."""
    if value is SERVER_TIMESTAMP:
        return now
    if isinstance(value, Mapping):
        return {k: resolve_server_timestamps(v, now) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [resolve_server_timestamps(v, now) for v in value]
    return value


def merge_fields(existing: Mapping[str, Any] | None, incoming: Mapping[str, Any]) -> dict[str, Any]:
    """Fusion profonde: `incoming` l'emporte, les clés absentes de `incoming` sont conservées."""
    merged: dict[str, Any] = copy.deepcopy(dict(existing or {}))
    for key, value in incoming.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = merge_fields(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def to_json_compatible(value: Any) -> Any:
    """Normalise une valeur pour un stockage JSON (datetime -> ISO 8601 UTC)."""
    if isinstance(value, datetime):
        v = value if value.tzinfo is not None else value.replace(tzinfo=UTC)
        return v.astimezone(UTC).isoformat()
    if isinstance(value, Mapping):
        return {str(k): to_json_compatible(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_compatible(v) for v in value]
    return value


class RecordStore(ABC):
    """Interface abstraite d'un store de documents avec merge-write et batch atomique."""

    name: str = "abstract"

    @abstractmethod
    def merge_upsert(self, collection: str, document_id: str, fields: Mapping[str, Any]) -> None:
        """Fusionne `fields` dans `{collection}/{document_id}` (créé s'il n'existe pas)."""
        ...

    @abstractmethod
    def batch_commit(
        self,
        collection: str,
        parent_id: str,
        subcollection: str,
        entries: Sequence[BatchEntry],
    ) -> None:
        """Fusionne chaque entrée sous `{collection}/{parent_id}/{subcollection}/`, tout ou rien."""
        ...

    @abstractmethod
    def get(self, path: str) -> dict[str, Any] | None:
        """Retourne le document à `path`, ou None."""
        ...

    @abstractmethod
    def list_documents(self, collection_path: str) -> list[dict[str, Any]]:
        """Retourne les documents d'une (sous-)collection, triés par identifiant."""
        ...
