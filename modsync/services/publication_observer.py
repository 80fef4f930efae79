"""Observateur de publication: logs structlog + métriques Prometheus par étape."""

from __future__ import annotations

import structlog

from modsync.app.metrics import (
    PUBLICATION_STAGE_FAILURES,
    PUBLICATION_STAGE_LATENCY,
    PUBLICATION_STAGE_TOTAL,
)
from modsync.domain.errors import PublicationFailure, Stage


class StructlogMetricsObserver:
    """Journalise chaque frontière d'étape et alimente les compteurs de publication."""

    def __init__(self) -> None:
        self._log = structlog.get_logger(__name__).bind(component="publication")

    def stage_started(self, stage: Stage, module_id: str) -> None:
        self._log.debug("stage_started", stage=stage.value, module_id=module_id)

    def stage_succeeded(self, stage: Stage, module_id: str, duration_s: float) -> None:
        PUBLICATION_STAGE_TOTAL.labels(stage.value, "success").inc()
        PUBLICATION_STAGE_LATENCY.labels(stage.value).observe(duration_s)
        self._log.info(
            "stage_succeeded",
            stage=stage.value,
            module_id=module_id,
            duration_ms=int(duration_s * 1000),
        )

    def stage_failed(self, stage: Stage, module_id: str, failure: PublicationFailure) -> None:
        PUBLICATION_STAGE_TOTAL.labels(stage.value, "failure").inc()
        PUBLICATION_STAGE_FAILURES.labels(stage.value, failure.kind.value).inc()
        # Après l'étape artifact, le document existe mais le record store est en retard
        self._log.error(
            "stage_failed",
            stage=stage.value,
            module_id=module_id,
            kind=failure.kind.value,
            retryable=failure.retryable,
            error=failure.cause.message,
            inconsistent=stage is not Stage.ARTIFACT,
        )
