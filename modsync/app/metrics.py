"""
Métriques Prometheus pour l'application.

Ce module définit les métriques HTTP et les métriques de publication (par étape), expose la route
`/metrics` et le middleware de mesure des requêtes.
"""

import time

from fastapi import APIRouter, Request
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

metrics_router = APIRouter()

REQUEST_COUNT = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "route", "status"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds", "Latency of HTTP requests", ["route"]
)

# Publication (artifact -> metadata -> sections)
PUBLICATION_STAGE_TOTAL = Counter(
    "publication_stage_total",
    "Publication stage outcomes",
    ["stage", "outcome"],
)
PUBLICATION_STAGE_FAILURES = Counter(
    "publication_stage_failures_total",
    "Publication stage failures by kind",
    ["stage", "kind"],
)
PUBLICATION_STAGE_LATENCY = Histogram(
    "publication_stage_latency_seconds",
    "Latency of publication stages",
    ["stage"],
)
PUBLICATION_RETRIES = Counter(
    "publication_retries_total",
    "Caller-side retries of whole publications",
    ["kind"],
)


@metrics_router.get("/metrics")
def metrics():
    """
    Expose les métriques Prometheus au format texte.

    Returns:
        Response: Réponse HTTP contenant les métriques au format Prometheus.
    """
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Middleware Prometheus: comptage et latence des requêtes par route."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response: Response = await call_next(request)
        route = request.scope.get("route")
        route_path = getattr(route, "path", None) or request.scope.get("path", "unknown")
        REQUEST_COUNT.labels(request.method, route_path, str(response.status_code)).inc()
        REQUEST_LATENCY.labels(route_path).observe(time.perf_counter() - start)
        return response
