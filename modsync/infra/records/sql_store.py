# ============================================================
# Module : modsync/infra/records/sql_store.py
# Objet  : Record store SQL (SQLAlchemy), une transaction par appel.
# ============================================================

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import (
    DisconnectionError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.orm.exc import StaleDataError

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
from modsync.infra.repo.db import get_engine, get_session_factory, session_scope
from modsync.infra.repo.models import Base, RecordORM


class SQLRecordStore(RecordStore):
    """Store de documents JSON dans une table `records`.

    Chaque appel s'exécute dans une seule transaction: un `batch_commit` est appliqué en entier
    ou annulé (rollback). Une insertion concurrente du même chemin viole la clé primaire; une mise
    à jour concurrente est détectée par la colonne `version`. Les deux remontent en `WriteConflict`.
    """

    name = "sql"

    def __init__(
        self,
        engine: Engine | None = None,
        url: str | None = None,
        create_schema: bool = False,
    ) -> None:
        """Construit le store sur `engine` (ou sur `url`, ou `DATABASE_URL`)."""
        self.engine = engine or get_engine(url)
        if create_schema:
            Base.metadata.create_all(self.engine)
        self._factory = get_session_factory(self.engine)
        self._log = structlog.get_logger(__name__).bind(component="sql_record_store")

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
        now = utcnow()
        # Regroupe les écritures par chemin pour une seule lecture/écriture par ligne
        incoming: dict[str, dict[str, Any]] = {}
        for path, fields in writes:
            resolved = to_json_compatible(resolve_server_timestamps(fields, now))
            incoming[path] = merge_fields(incoming.get(path), resolved)
        paths = list(incoming)
        try:
            with session_scope(self._factory) as session:
                for path, fields in incoming.items():
                    row = session.get(RecordORM, path)
                    if row is None:
                        session.add(
                            RecordORM(
                                path=path,
                                collection_path=parent_of(path),
                                document_id=path.rsplit("/", 1)[1],
                                data=fields,
                                updated_at=now,
                            )
                        )
                    else:
                        row.data = merge_fields(row.data, fields)
                        row.updated_at = now
        except IntegrityError as exc:
            self._log.warning("record_write_conflict", paths=paths)
            raise WriteConflict("concurrent insert detected", {"paths": paths}) from exc
        except StaleDataError as exc:
            self._log.warning("record_write_conflict", paths=paths)
            raise WriteConflict("concurrent update detected", {"paths": paths}) from exc
        except (OperationalError, InterfaceError, DisconnectionError) as exc:
            raise Unavailable(f"database unavailable: {exc}", {"paths": paths}) from exc
        except (SQLAlchemyError, TypeError, ValueError) as exc:
            raise InvalidArgument(f"invalid record write: {exc}", {"paths": paths}) from exc

    def get(self, path: str) -> dict[str, Any] | None:
        try:
            with session_scope(self._factory) as session:
                row = session.get(RecordORM, path)
                return dict(row.data) if row is not None else None
        except (OperationalError, InterfaceError, DisconnectionError) as exc:
            raise Unavailable(f"database unavailable: {exc}", {"path": path}) from exc

    def list_documents(self, collection_path: str) -> list[dict[str, Any]]:
        stmt = (
            select(RecordORM)
            .where(RecordORM.collection_path == collection_path)
            .order_by(RecordORM.document_id)
        )
        try:
            with session_scope(self._factory) as session:
                return [dict(r.data) for r in session.execute(stmt).scalars().all()]
        except (OperationalError, InterfaceError, DisconnectionError) as exc:
            raise Unavailable(f"database unavailable: {exc}", {"path": collection_path}) from exc
