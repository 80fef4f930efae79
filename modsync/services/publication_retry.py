"""Retry côté appelant d'une publication complète.

L'orchestrateur ne relance jamais une étape. Comme chaque étape est idempotente, un appelant
(script d'import, job) peut relancer `publish` de bout en bout sur un échec transitoire
(`transport`, `unavailable`). Backoff exponentiel avec jitter.
"""

from __future__ import annotations

import random as _rand
import time as _t
from collections.abc import Callable, Sequence

import structlog

from modsync.app.metrics import PUBLICATION_RETRIES
from modsync.domain.errors import PublicationFailure
from modsync.domain.models import Module, PublicationResult, Section
from modsync.domain.publication import PublicationOrchestrator

RETRY_RANDOM_FACTOR = 0.1

log = structlog.get_logger(__name__).bind(component="publication_retry")


def backoff_delay(attempt: int, base_delay_s: float, rand: Callable[[], float] = _rand.random) -> float:
    """Délai avant la tentative `attempt + 1` (attempt >= 1)."""
    return (2 ** (attempt - 1)) * base_delay_s + rand() * RETRY_RANDOM_FACTOR


def publish_with_retry(
    orchestrator: PublicationOrchestrator,
    module: Module,
    sections: Sequence[Section] = (),
    max_attempts: int = 3,
    base_delay_s: float = 0.5,
    sleep: Callable[[float], None] = _t.sleep,
) -> PublicationResult:
    """Publie avec relance complète sur échec transitoire.

    Args:
        orchestrator: Orchestrateur configuré.
        module: Module à publier.
        sections: Sections du module.
        max_attempts: Nombre maximal de tentatives (>= 1).
        base_delay_s: Délai de base du backoff exponentiel.
        sleep: Fonction d'attente (injectable pour les tests).

    Returns:
        PublicationResult: Résultat de la première tentative réussie.

    Raises:
        PublicationFailure: Échec non transitoire, ou dernier échec après épuisement.
    """
    attempts = 0
    while True:
        attempts += 1
        try:
            return orchestrator.publish(module, sections)
        except PublicationFailure as failure:
            if not failure.retryable or attempts >= max(1, max_attempts):
                raise
            delay = backoff_delay(attempts, base_delay_s)
            PUBLICATION_RETRIES.labels(failure.kind.value).inc()
            log.warning(
                "publication_retry",
                module_id=module.id,
                stage=failure.stage.value,
                kind=failure.kind.value,
                attempt=attempts,
                delay_s=round(delay, 3),
            )
            sleep(delay)
