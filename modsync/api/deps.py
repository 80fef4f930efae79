"""Dépendances partagées pour les routes de l'API.

But du module
-------------
- Fournir aux endpoints le conteneur (orchestrateur, record store) via `Depends`.
- Les tests remplacent `get_container` par `app.dependency_overrides`.
"""

from functools import lru_cache

from modsync.core.container import Container


@lru_cache(maxsize=1)
def get_container() -> Container:
    """Conteneur construit paresseusement depuis la configuration d'environnement."""
    return Container()
