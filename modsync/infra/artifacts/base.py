"""Interface de base pour le service de génération de documents."""

from __future__ import annotations

from abc import ABC, abstractmethod


class ArtifactClient(ABC):
    """Interface abstraite d'un client de génération de documents."""

    name: str = "abstract"

    @abstractmethod
    def create_or_update(self, module_id: str, title: str, content: str) -> str:
        """Crée ou met à jour le document rendu et retourne sa référence durable.

        L'appel est un upsert par `module_id`: le répéter avec le même contenu ne crée pas de
        doublon.

        Raises:
            InvalidRequest: identifiant vide.
            TransportFailure: aucune réponse du service.
            ServiceFailure: le service a répondu en erreur.
        """
        ...
