# ============================================================
# Module : modsync/infra/artifacts/http_client.py
# Objet  : Client HTTP du service de génération de documents.
# Contexte : POST {DOCS_BASE_URL}/create-doc {title, content, moduleId} -> {docUrl}
# ============================================================

from __future__ import annotations

from typing import Any

import httpx
import structlog

from modsync.core.http_constants import ERROR_BODY_MAX_CHARS, HTTP_ERROR_MIN
from modsync.domain.errors import InvalidRequest, ServiceFailure, TransportFailure
from modsync.infra.artifacts.base import ArtifactClient

CREATE_DOC_PATH = "/create-doc"


class HttpArtifactClient(ArtifactClient):
    """Client du service de documents via API HTTP (httpx).

    Les erreurs httpx sont traduites dans la taxonomie du domaine:
      - timeout / erreur réseau ou protocole -> `TransportFailure`
      - URL du service invalide -> `InvalidRequest`
      - statut >= 400 ou corps sans `docUrl` -> `ServiceFailure`
      - identifiant vide -> `InvalidRequest` (aucune requête émise)
    """

    name = "http"

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout_s: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        """Initialise le client HTTP (pool/timeouts) vers `base_url`."""
        self.base_url = (base_url or "").rstrip("/")
        self._log = structlog.get_logger(__name__).bind(
            component="artifact_client", base_url=self.base_url
        )
        if client is None:
            headers: dict[str, str] = {"Content-Type": "application/json"}
            if api_key:
                headers["Authorization"] = f"Bearer {api_key}"
            timeout = httpx.Timeout(timeout_s)
            limits = httpx.Limits(max_keepalive_connections=10, max_connections=20)
            client = httpx.Client(headers=headers, timeout=timeout, limits=limits)
        self._client = client

    def create_or_update(self, module_id: str, title: str, content: str) -> str:
        if not module_id:
            raise InvalidRequest("moduleId is required")
        url = f"{self.base_url}{CREATE_DOC_PATH}"
        payload: dict[str, Any] = {"title": title, "content": content, "moduleId": module_id}
        ctx = {"module_id": module_id, "url": url}
        try:
            resp = self._client.post(url, json=payload)
        except httpx.TimeoutException as exc:
            raise TransportFailure(f"timeout calling document service: {exc}", ctx) from exc
        except httpx.RequestError as exc:
            raise TransportFailure(f"document service unreachable: {exc}", ctx) from exc
        except httpx.InvalidURL as exc:
            raise InvalidRequest(f"invalid document service url: {exc}", ctx) from exc

        if resp.status_code >= HTTP_ERROR_MIN:
            body = resp.text[:ERROR_BODY_MAX_CHARS]
            self._log.warning(
                "document_service_error", module_id=module_id, status_code=resp.status_code
            )
            raise ServiceFailure(
                f"document service returned {resp.status_code}",
                status_code=resp.status_code,
                body=body,
                context=ctx,
            )
        return self._extract_reference(resp, ctx)

    @staticmethod
    def _extract_reference(resp: httpx.Response, ctx: dict[str, Any]) -> str:
        """Lit `docUrl` dans la réponse; un corps inexploitable est un échec du service."""
        try:
            data = resp.json()
        except ValueError as exc:
            raise ServiceFailure(
                "document service returned a non-JSON body",
                status_code=resp.status_code,
                body=resp.text[:ERROR_BODY_MAX_CHARS],
                context=ctx,
            ) from exc
        reference = data.get("docUrl") if isinstance(data, dict) else None
        if not isinstance(reference, str) or not reference:
            raise ServiceFailure(
                "document service response has no docUrl",
                status_code=resp.status_code,
                body=resp.text[:ERROR_BODY_MAX_CHARS],
                context=ctx,
            )
        return reference

    def close(self) -> None:
        """Ferme le pool de connexions HTTP."""
        self._client.close()
