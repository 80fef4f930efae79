"""Orchestrateur de publication d'un module.

Ce module synchronise un couple (module, sections) vers deux stores sans transaction commune:
le service de génération de documents, puis le record store.

Séquence (strictement ordonnée)
-------------------------------
1. `artifact`  : upsert du document rendu, obtention de sa référence.
2. `metadata`  : merge-write de `modules/{id}` avec `content` remplacé par la référence.
3. `sections`  : batch atomique de `modules/{id}/sections/section-<order>` (si sections).

Un échec à l'étape 1 ne produit aucune écriture dans le record store. Chaque étape est
idempotente: relancer `publish` de bout en bout est toujours sûr. L'orchestrateur ne fait
aucun retry ni compensation.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from typing import Any, Protocol

from modsync.domain.errors import (
    ArtifactError,
    ClassifiedError,
    InvalidRequest,
    PublicationFailure,
    RecordStoreError,
    Stage,
)
from modsync.domain.models import (
    MODULES_COLLECTION,
    SECTIONS_SUBCOLLECTION,
    Module,
    PublicationResult,
    Section,
)
from modsync.infra.artifacts.base import ArtifactClient
from modsync.infra.records.base import SERVER_TIMESTAMP, RecordStore, is_valid_segment

DEFAULT_TITLE_SUFFIX = " Notes"
DEFAULT_CONTENT = "Default content"


class PublicationObserver(Protocol):
    """Point d'observation appelé aux frontières d'étapes."""

    def stage_started(self, stage: Stage, module_id: str) -> None: ...

    def stage_succeeded(self, stage: Stage, module_id: str, duration_s: float) -> None: ...

    def stage_failed(self, stage: Stage, module_id: str, failure: PublicationFailure) -> None: ...


class NullObserver:
    """Observateur sans effet (défaut)."""

    def stage_started(self, stage: Stage, module_id: str) -> None:
        return None

    def stage_succeeded(self, stage: Stage, module_id: str, duration_s: float) -> None:
        return None

    def stage_failed(self, stage: Stage, module_id: str, failure: PublicationFailure) -> None:
        return None


def _validate(module: Module, sections: Sequence[Section]) -> None:
    """Préconditions vérifiées avant tout appel externe."""
    if not module.id:
        raise InvalidRequest("module id is required")
    if not is_valid_segment(module.id):
        raise InvalidRequest(
            f"module id must not contain '/': {module.id!r}", {"module_id": module.id}
        )
    seen: set[int] = set()
    for section in sections:
        order = section.order
        if isinstance(order, bool) or not isinstance(order, int) or order < 0:
            raise InvalidRequest(
                f"section order must be a non-negative integer: {order!r}",
                {"order": order},
            )
        if order in seen:
            raise InvalidRequest(f"duplicate section order: {order}", {"order": order})
        seen.add(order)


class PublicationOrchestrator:
    """Synchronise un module et ses sections vers le service de documents et le record store."""

    def __init__(
        self,
        artifacts: ArtifactClient,
        records: RecordStore,
        observer: PublicationObserver | None = None,
        title_suffix: str = DEFAULT_TITLE_SUFFIX,
        default_content: str = DEFAULT_CONTENT,
    ) -> None:
        """Initialise l'orchestrateur avec ses collaborateurs injectés."""
        self.artifacts = artifacts
        self.records = records
        self.observer = observer or NullObserver()
        self.title_suffix = title_suffix
        self.default_content = default_content

    def derive_title(self, module: Module) -> str:
        """Titre du document rendu: titre du module suivi du suffixe configuré."""
        return f"{module.title}{self.title_suffix}"

    def publish(self, module: Module, sections: Sequence[Section] = ()) -> PublicationResult:
        """Publie `module` et `sections`; lève `PublicationFailure` à la première étape en échec."""
        sections = list(sections)
        try:
            _validate(module, sections)
        except InvalidRequest as exc:
            failure = PublicationFailure(Stage.ARTIFACT, exc, {"module_id": module.id})
            self.observer.stage_failed(Stage.ARTIFACT, module.id, failure)
            raise failure from exc

        reference = self._run(
            Stage.ARTIFACT,
            module.id,
            ArtifactError,
            lambda: self.artifacts.create_or_update(
                module.id, self.derive_title(module), module.content or self.default_content
            ),
        )

        self._run(
            Stage.METADATA,
            module.id,
            RecordStoreError,
            lambda: self.records.merge_upsert(
                MODULES_COLLECTION, module.id, self._metadata_fields(module, reference)
            ),
        )

        section_ids = tuple(s.record_id for s in sections)
        if sections:
            entries = [(s.record_id, s.to_record()) for s in sections]
            self._run(
                Stage.SECTIONS,
                module.id,
                RecordStoreError,
                lambda: self.records.batch_commit(
                    MODULES_COLLECTION, module.id, SECTIONS_SUBCOLLECTION, entries
                ),
                {"section_count": len(entries)},
            )
        return PublicationResult(module_id=module.id, reference=reference, section_ids=section_ids)

    @staticmethod
    def _metadata_fields(module: Module, reference: str) -> dict[str, Any]:
        fields = module.base_fields()
        fields["content"] = reference
        fields["createdAt"] = module.created_at or SERVER_TIMESTAMP
        fields["updatedAt"] = SERVER_TIMESTAMP
        return fields

    def _run(
        self,
        stage: Stage,
        module_id: str,
        expected: type[ClassifiedError],
        step,
        context: dict[str, Any] | None = None,
    ):
        """Exécute une étape, chronomètre et traduit les erreurs classifiées en échec étiqueté."""
        self.observer.stage_started(stage, module_id)
        start = time.perf_counter()
        try:
            result = step()
        except expected as exc:
            failure = PublicationFailure(stage, exc, {"module_id": module_id, **(context or {})})
            self.observer.stage_failed(stage, module_id, failure)
            raise failure from exc
        self.observer.stage_succeeded(stage, module_id, time.perf_counter() - start)
        return result
