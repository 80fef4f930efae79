"""
Endpoint de santé pour vérifier la disponibilité de l'API et des backends.

Expose `/health` pour signaler l'état général et les backends configurés.
"""

from fastapi import APIRouter, Depends

from modsync.api.deps import get_container
from modsync.core.container import Container

router = APIRouter(tags=["health"])


@router.get("/health")
def health(container: Container = Depends(get_container)):
    """Vérifie la disponibilité de l'API et indique les backends utilisés."""
    return {
        "status": "ok",
        "record_store": getattr(container.records, "name", "unknown"),
        "artifacts": getattr(container.artifacts, "name", "unknown"),
    }
