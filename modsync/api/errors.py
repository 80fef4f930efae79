"""Gestion standardisée des erreurs API avec enveloppes d'erreur.

Ce module fournit des enveloppes d'erreur standardisées `{code, message, trace_id, details}` et la
correspondance entre les échecs de publication et les statuts HTTP.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse

from modsync.core.http_constants import (
    HTTP_BAD_GATEWAY,
    HTTP_BAD_REQUEST,
    HTTP_CONFLICT,
    HTTP_SERVICE_UNAVAILABLE,
    HTTP_UNPROCESSABLE_ENTITY,
)
from modsync.domain.errors import ClassifiedError, FailureKind, PublicationFailure

log = structlog.get_logger(__name__)


@dataclass
class ErrorEnvelope:
    """Standard error envelope for API responses."""

    code: str
    message: str
    trace_id: str | None = None
    details: dict[str, Any] | None = None


class ErrorCodes:
    """Standard error codes for the API."""

    BAD_REQUEST = "BAD_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    BAD_GATEWAY = "BAD_GATEWAY"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


# kind -> (statut HTTP, code d'erreur)
FAILURE_STATUS: dict[FailureKind, tuple[int, str]] = {
    FailureKind.INVALID_REQUEST: (HTTP_BAD_REQUEST, ErrorCodes.BAD_REQUEST),
    FailureKind.INVALID_ARGUMENT: (HTTP_UNPROCESSABLE_ENTITY, ErrorCodes.VALIDATION_ERROR),
    FailureKind.WRITE_CONFLICT: (HTTP_CONFLICT, ErrorCodes.CONFLICT),
    FailureKind.SERVICE: (HTTP_BAD_GATEWAY, ErrorCodes.BAD_GATEWAY),
    FailureKind.TRANSPORT: (HTTP_SERVICE_UNAVAILABLE, ErrorCodes.SERVICE_UNAVAILABLE),
    FailureKind.UNAVAILABLE: (HTTP_SERVICE_UNAVAILABLE, ErrorCodes.SERVICE_UNAVAILABLE),
}


def create_error_response(
    status_code: int,
    code: str,
    message: str,
    trace_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Create a standardized error response."""
    envelope = ErrorEnvelope(code=code, message=message, trace_id=trace_id, details=details)
    return JSONResponse(
        status_code=status_code,
        content={
            "code": envelope.code,
            "message": envelope.message,
            "trace_id": envelope.trace_id,
            **({"details": envelope.details} if envelope.details else {}),
        },
    )


def extract_trace_id(request: Request) -> str | None:
    """Extract trace ID from request headers or request state."""
    trace_id = request.headers.get("X-Trace-ID")
    if trace_id:
        return trace_id
    return getattr(request.state, "request_id", None)


def handle_publication_failure(request: Request, exc: PublicationFailure) -> JSONResponse:
    """Traduit un `PublicationFailure` en réponse d'erreur standard."""
    trace_id = extract_trace_id(request)
    status_code, code = FAILURE_STATUS[exc.kind]
    details = exc.to_dict()
    details.pop("message", None)
    log.error(
        "publication_failed",
        code=code,
        status_code=status_code,
        trace_id=trace_id,
        stage=exc.stage.value,
        kind=exc.kind.value,
    )
    return create_error_response(
        status_code=status_code,
        code=code,
        message=exc.cause.message,
        trace_id=trace_id,
        details=details,
    )


def handle_store_error(request: Request, exc: ClassifiedError) -> JSONResponse:
    """Erreur classifiée hors publication (ex: lecture du record store indisponible)."""
    trace_id = extract_trace_id(request)
    status_code, code = FAILURE_STATUS[exc.kind]
    log.error("store_error", code=code, status_code=status_code, trace_id=trace_id)
    return create_error_response(
        status_code=status_code,
        code=code,
        message=exc.message,
        trace_id=trace_id,
        details={"kind": exc.kind.value},
    )
