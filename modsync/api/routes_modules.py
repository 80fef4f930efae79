"""Routes de publication et de consultation des modules.

Objectif du module
------------------
- `POST /modules/{module_id}/publish`: publie un module et ses sections.
- `GET /modules/{module_id}`: retourne le module publié et ses sections.
"""

from fastapi import APIRouter, Depends, HTTPException

from modsync.api.deps import get_container
from modsync.api.schemas import ModuleView, PublishRequest, PublishResponse
from modsync.core.container import Container
from modsync.core.http_constants import HTTP_NOT_FOUND
from modsync.domain.models import MODULES_COLLECTION, SECTIONS_SUBCOLLECTION
from modsync.infra.records.base import document_path, subcollection_path

router = APIRouter(prefix="/modules", tags=["modules"])


@router.post("/{module_id}/publish", response_model=PublishResponse)
def publish_module(
    module_id: str,
    payload: PublishRequest,
    container: Container = Depends(get_container),
):
    """Publie le module; les échecs sont traduits par le handler `PublicationFailure`."""
    module, sections = payload.to_domain(module_id)
    result = container.orchestrator.publish(module, sections)
    return PublishResponse(
        module_id=result.module_id,
        reference=result.reference,
        section_ids=list(result.section_ids),
    )


@router.get("/{module_id}", response_model=ModuleView)
def get_module(module_id: str, container: Container = Depends(get_container)):
    """Récupère un module publié par identifiant, sinon 404."""
    records = container.records
    module = records.get(document_path(MODULES_COLLECTION, module_id))
    if module is None:
        raise HTTPException(status_code=HTTP_NOT_FOUND, detail="Module not found")
    sections = records.list_documents(
        subcollection_path(MODULES_COLLECTION, module_id, SECTIONS_SUBCOLLECTION)
    )
    sections.sort(key=lambda s: s.get("order", 0))
    return ModuleView(module=module, sections=sections)
