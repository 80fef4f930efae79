"""Taxonomie des échecs de publication.

Ce module définit l'ensemble fermé des erreurs classifiées remontées par les deux collaborateurs
externes (service de documents, record store) et l'erreur `PublicationFailure` que
l'orchestrateur lève, étiquetée par l'étape où l'échec s'est produit.
"""

# ============================================================
# Module : modsync/domain/errors.py
# Objet  : Erreurs classifiées (artifact / record store / publication).
# ============================================================

from __future__ import annotations

from enum import Enum
from typing import Any


class Stage(str, Enum):
    """Étape de la séquence de publication."""

    ARTIFACT = "artifact"
    METADATA = "metadata"
    SECTIONS = "sections"


class FailureKind(str, Enum):
    """Nature d'un échec, indépendante de la bibliothèque sous-jacente."""

    INVALID_REQUEST = "invalid_request"
    TRANSPORT = "transport"
    SERVICE = "service"
    WRITE_CONFLICT = "write_conflict"
    UNAVAILABLE = "unavailable"
    INVALID_ARGUMENT = "invalid_argument"


RETRYABLE_KINDS = frozenset({FailureKind.TRANSPORT, FailureKind.UNAVAILABLE})


class ClassifiedError(RuntimeError):
    """Base des erreurs classifiées levées par les adaptateurs."""

    kind: FailureKind

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = dict(context or {})


# --- Service de génération de documents ---
class ArtifactError(ClassifiedError):
    """Échec du service de génération de documents."""


class TransportFailure(ArtifactError):
    """Aucune réponse n'a atteint le service (réseau, DNS, timeout)."""

    kind = FailureKind.TRANSPORT


class ServiceFailure(ArtifactError):
    """Le service a répondu avec un statut ou un corps d'erreur."""

    kind = FailureKind.SERVICE

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = dict(context or {})
        ctx.setdefault("status_code", status_code)
        if body is not None:
            ctx.setdefault("body", body)
        super().__init__(message, ctx)
        self.status_code = status_code
        self.body = body


class InvalidRequest(ArtifactError):
    """Entrée mal formée côté appelant (ex: identifiant vide)."""

    kind = FailureKind.INVALID_REQUEST


# --- Record store ---
class RecordStoreError(ClassifiedError):
    """Échec du record store."""


class WriteConflict(RecordStoreError):
    """Violation de concurrence optimiste."""

    kind = FailureKind.WRITE_CONFLICT


class Unavailable(RecordStoreError):
    """Défaillance transitoire du store."""

    kind = FailureKind.UNAVAILABLE


class InvalidArgument(RecordStoreError):
    """Chemin ou champ invalide."""

    kind = FailureKind.INVALID_ARGUMENT


class PublicationFailure(RuntimeError):
    """Échec d'une publication, étiqueté par étape.

    Attributs
    - stage: étape en échec (`artifact` | `metadata` | `sections`).
    - kind: nature de l'échec (voir `FailureKind`).
    - cause: erreur classifiée d'origine.
    - context: détails bruts (statut HTTP, corps, module_id, nombre de sections...).
    """

    def __init__(
        self,
        stage: Stage,
        cause: ClassifiedError,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.stage = Stage(stage)
        self.kind = cause.kind
        self.cause = cause
        self.context = {**cause.context, **(context or {})}
        super().__init__(f"publication failed at stage '{self.stage.value}': {cause.message}")

    @property
    def retryable(self) -> bool:
        """Indique si relancer la publication complète a une chance d'aboutir."""
        return self.kind in RETRYABLE_KINDS

    def to_dict(self) -> dict[str, Any]:
        """Représentation sérialisable (logs, enveloppe d'erreur API)."""
        return {
            "stage": self.stage.value,
            "kind": self.kind.value,
            "retryable": self.retryable,
            "message": self.cause.message,
            "context": self.context,
        }
