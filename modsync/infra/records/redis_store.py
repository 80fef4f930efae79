"""Record store adossé à Redis.

Clés
----
- document: `{prefix}:doc:{chemin}` (JSON)
- index de collection: `{prefix}:idx:{chemin_collection}` (set des identifiants)

Atomicité: chaque appel (`merge_upsert` ou `batch_commit`) lit les documents sous `WATCH` puis
écrit toutes les fusions dans un unique `MULTI/EXEC`. Une modification concurrente d'une clé
surveillée annule la transaction entière et lève `WriteConflict`; rien n'est écrit.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any

import redis
import structlog
from redis import exceptions as redis_exc

from modsync.domain.errors import InvalidArgument, Unavailable, WriteConflict
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
    to_json_compatible,
    utcnow,
)


class RedisRecordStore(RecordStore):
    """Store de documents JSON dans Redis, concurrence optimiste via WATCH."""

    name = "redis"

    def __init__(
        self,
        url: str | None = None,
        client: Any | None = None,
        key_prefix: str = "modsync",
    ) -> None:
        """Crée un client Redis à partir de l'URL fournie (ou utilise `client`)."""
        if client is None:
            if not url:
                raise ValueError("REDIS_URL est requis pour RedisRecordStore")
            client = redis.Redis.from_url(
                url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                health_check_interval=30,
            )
        self.client = client
        self.prefix = key_prefix
        self._log = structlog.get_logger(__name__).bind(component="redis_record_store")

    def _doc_key(self, path: str) -> str:
        return f"{self.prefix}:doc:{path}"

    def _idx_key(self, collection_path: str) -> str:
        return f"{self.prefix}:idx:{collection_path}"

    def merge_upsert(self, collection: str, document_id: str, fields: Mapping[str, Any]) -> None:
        path = document_path(collection, document_id)
        check_fields(fields)
        self._commit([(path, fields)])

    def batch_commit(
        self,
        collection: str,
        parent_id: str,
        subcollection: str,
        entries: Sequence[BatchEntry],
    ) -> None:
        base = subcollection_path(collection, parent_id, subcollection)
        writes: list[tuple[str, Mapping[str, Any]]] = []
        for document_id, fields in entries:
            check_fields(fields)
            writes.append((child_path(base, document_id), fields))
        if writes:
            self._commit(writes)

    def _commit(self, writes: list[tuple[str, Mapping[str, Any]]]) -> None:
        """Lit sous WATCH, fusionne, puis écrit le tout dans une transaction MULTI/EXEC."""
        paths = list(dict.fromkeys(path for path, _ in writes))
        keys = [self._doc_key(p) for p in paths]
        try:
            with self.client.pipeline() as pipe:
                pipe.watch(*keys)
                raw_docs = pipe.mget(keys)
                staged: dict[str, dict[str, Any]] = {
                    p: json.loads(raw) for p, raw in zip(paths, raw_docs, strict=True) if raw
                }
                now = utcnow()
                for path, fields in writes:
                    incoming = to_json_compatible(resolve_server_timestamps(fields, now))
                    staged[path] = merge_fields(staged.get(path), incoming)
                pipe.multi()
                for path in paths:
                    pipe.set(self._doc_key(path), json.dumps(staged[path]))
                    pipe.sadd(self._idx_key(parent_of(path)), path.rsplit("/", 1)[1])
                pipe.execute()
        except redis_exc.WatchError as exc:
            self._log.warning("record_write_conflict", paths=paths)
            raise WriteConflict("concurrent modification detected", {"paths": paths}) from exc
        except (redis_exc.ConnectionError, redis_exc.TimeoutError) as exc:
            raise Unavailable(f"redis unavailable: {exc}", {"paths": paths}) from exc
        except (redis_exc.DataError, redis_exc.ResponseError, TypeError, ValueError) as exc:
            raise InvalidArgument(f"invalid record write: {exc}", {"paths": paths}) from exc

    def get(self, path: str) -> dict[str, Any] | None:
        try:
            raw = self.client.get(self._doc_key(path))
        except (redis_exc.ConnectionError, redis_exc.TimeoutError) as exc:
            raise Unavailable(f"redis unavailable: {exc}", {"path": path}) from exc
        return json.loads(raw) if raw else None

    def list_documents(self, collection_path: str) -> list[dict[str, Any]]:
        try:
            ids = sorted(self.client.smembers(self._idx_key(collection_path)) or [])
            if not ids:
                return []
            raws = self.client.mget([self._doc_key(f"{collection_path}/{i}") for i in ids])
        except (redis_exc.ConnectionError, redis_exc.TimeoutError) as exc:
            raise Unavailable(f"redis unavailable: {exc}", {"path": collection_path}) from exc
        return [json.loads(raw) for raw in raws if raw]
