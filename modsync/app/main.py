"""
Application principale FastAPI.

Responsabilités du module:
- Initialiser le logging structuré
- Construire l'application FastAPI avec son titre/debug
- Ajouter les middlewares (request id, métriques)
- Monter les routers (santé, modules, métriques)
- Enregistrer les handlers d'erreurs de publication
"""

from __future__ import annotations

import uvicorn
from fastapi import FastAPI

from modsync.api.errors import handle_publication_failure, handle_store_error
from modsync.api.routes_health import router as health_router
from modsync.api.routes_modules import router as modules_router
from modsync.app.metrics import PrometheusMiddleware, metrics_router
from modsync.core.logging import setup_logging
from modsync.core.settings import Settings, get_settings
from modsync.domain.errors import PublicationFailure, RecordStoreError
from modsync.middlewares.request_id import RequestIDMiddleware


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Construit et retourne l'application FastAPI prête à l'usage.

    Étapes:
    - Configure le logging structuré (structlog)
    - Lit les paramètres d'exécution
    - Ajoute les middlewares utiles au debug/traçabilité
    - Publie les routes
    """
    setup_logging()
    settings = settings or get_settings()
    app = FastAPI(title=settings.APP_NAME, debug=settings.APP_DEBUG)
    app.add_middleware(PrometheusMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_exception_handler(PublicationFailure, handle_publication_failure)
    app.add_exception_handler(RecordStoreError, handle_store_error)
    app.include_router(health_router)
    app.include_router(modules_router)
    app.include_router(metrics_router)
    return app


def run() -> None:
    """Lance le serveur HTTP (uvicorn) avec l'hôte/port configurés."""
    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.APP_HOST, port=settings.APP_PORT)


if __name__ == "__main__":
    run()
