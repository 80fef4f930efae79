# Schémas Pydantic exposés par l'API (requêtes et réponses).

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from modsync.domain.models import Module, Section


class SectionPayload(BaseModel):
    """Section à publier: `order` + champs libres (opaques pour la publication)."""

    model_config = ConfigDict(extra="allow")

    order: int

    def to_domain(self) -> Section:
        return Section(order=self.order, fields=dict(self.model_extra or {}))


class PublishRequest(BaseModel):
    """Requête de publication d'un module.

    Champs:
    - title: str
    - content: str (corps brut; remplacé par la référence du document une fois publié)
    - created_at: datetime | None (sinon horodatage serveur)
    - extra: dict (champs additionnels écrits tels quels)
    - sections: list[SectionPayload]
    """

    title: str = ""
    content: str = ""
    created_at: datetime | None = None
    extra: dict[str, Any] = Field(default_factory=dict)
    sections: list[SectionPayload] = Field(default_factory=list)

    def to_domain(self, module_id: str) -> tuple[Module, list[Section]]:
        module = Module(
            id=module_id,
            title=self.title,
            content=self.content,
            created_at=self.created_at,
            extra=dict(self.extra),
        )
        return module, [s.to_domain() for s in self.sections]


class PublishResponse(BaseModel):
    """Réponse d'une publication réussie."""

    module_id: str
    reference: str
    section_ids: list[str]


class ModuleView(BaseModel):
    """Module publié tel que stocké, avec ses sections triées par `order`."""

    module: dict[str, Any]
    sections: list[dict[str, Any]]
