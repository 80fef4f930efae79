"""
Client de documents déterministe en mémoire (dev/démo).

Produit une référence stable par module sans appel réseau. Les documents sont conservés dans un
dict local: un même `module_id` est mis à jour, jamais dupliqué.
"""

from __future__ import annotations

from modsync.domain.errors import InvalidRequest
from modsync.infra.artifacts.base import ArtifactClient


class DeterministicArtifactClient(ArtifactClient):
    """Upsert local des documents; référence = `{base_url}/{module_id}`."""

    name = "deterministic"

    def __init__(self, base_url: str = "https://docs.local") -> None:
        self.base_url = base_url.rstrip("/")
        self.documents: dict[str, dict[str, str]] = {}

    def create_or_update(self, module_id: str, title: str, content: str) -> str:
        if not module_id:
            raise InvalidRequest("moduleId is required")
        reference = f"{self.base_url}/{module_id}"
        self.documents[module_id] = {"title": title, "content": content, "reference": reference}
        return reference
