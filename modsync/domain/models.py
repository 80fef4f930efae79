"""
Modèles de domaine de la publication (POPO).

Ce module définit le module publié, ses sections et le résultat d'une publication, ainsi que la
règle d'identité des sections (`section-<order>`).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

MODULES_COLLECTION = "modules"
SECTIONS_SUBCOLLECTION = "sections"
SECTION_ID_PREFIX = "section-"


def section_id_for(order: int) -> str:
    """Identifiant de record d'une section, fonction pure de sa position."""
    return f"{SECTION_ID_PREFIX}{order}"


@dataclass
class Module:
    """
    Module à publier (objet domaine).

    Attributs
    - id: identifiant stable fourni par l'appelant (non vide).
    - title: titre.
    - content: corps brut avant rendu.
    - created_at: date de création (optionnelle; sinon horodatage serveur).
    - extra: champs additionnels de l'appelant, écrits tels quels.
    """

    id: str
    title: str = ""
    content: str = ""
    created_at: datetime | str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def base_fields(self) -> dict[str, Any]:
        """Champs du module tels qu'écrits dans le store (hors horodatages)."""
        return {**self.extra, "id": self.id, "title": self.title, "content": self.content}


@dataclass
class Section:
    """Sous-section d'un module, identifiée par sa position `order`."""

    order: int
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def record_id(self) -> str:
        return section_id_for(self.order)

    def to_record(self) -> dict[str, Any]:
        """Champs du record: corps opaque + `order` + `id` (clé du document)."""
        return {**self.fields, "order": self.order, "id": self.record_id}


@dataclass(frozen=True)
class PublicationResult:
    """Résultat d'une publication réussie."""

    module_id: str
    reference: str
    section_ids: tuple[str, ...] = ()
