"""
Script de publication en lot de modules.

Lit un fichier JSON de modules (avec leurs sections) et publie chacun via l'orchestrateur, avec
relance complète sur échec transitoire. Un échec sur un module n'interrompt pas le lot.

Format attendu du JSON: liste de modules, ou dictionnaire {id -> module}:
    {"id": str, "title": str, "content": str, "createdAt": str?, "sections": [{"order": int, ...}]}
Les autres clés d'un module sont conservées comme champs additionnels.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

# Permet l'exécution du script en direct (python scripts/publish_modules.py)
SYS_ROOT = Path(__file__).resolve().parents[1]
if str(SYS_ROOT) not in sys.path:
    sys.path.append(str(SYS_ROOT))

from modsync.core.container import Container  # noqa: E402
from modsync.core.logging import setup_logging  # noqa: E402
from modsync.domain.errors import PublicationFailure  # noqa: E402
from modsync.domain.models import Module, Section  # noqa: E402
from modsync.services.publication_retry import publish_with_retry  # noqa: E402

_MODULE_KEYS = {"id", "moduleId", "title", "content", "createdAt", "sections"}


def _to_domain(raw: dict[str, Any], fallback_id: str = "") -> tuple[Module, list[Section]]:
    """Construit `Module` et `Section` depuis un dict JSON."""
    module = Module(
        id=str(raw.get("id") or raw.get("moduleId") or fallback_id),
        title=str(raw.get("title", "")),
        content=str(raw.get("content", "")),
        created_at=raw.get("createdAt"),
        extra={k: v for k, v in raw.items() if k not in _MODULE_KEYS},
    )
    sections = [
        Section(order=s.get("order"), fields={k: v for k, v in s.items() if k != "order"})
        for s in raw.get("sections") or []
    ]
    return module, sections


def load_modules(path: Path) -> list[tuple[Module, list[Section]]]:
    """Charge les modules depuis `path` (liste ou dict indexé par id)."""
    raw = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(raw, dict):
        return [_to_domain(val, key) for key, val in raw.items() if isinstance(val, dict)]
    return [_to_domain(val) for val in raw if isinstance(val, dict)]


def publish_all(container: Container, items: list[tuple[Module, list[Section]]]) -> dict[str, Any]:
    """Publie chaque module; retourne le bilan {published, failed: {id: détails}}."""
    settings = container.settings
    published: list[str] = []
    failed: dict[str, dict[str, Any]] = {}
    for module, sections in items:
        try:
            publish_with_retry(
                container.orchestrator,
                module,
                sections,
                max_attempts=settings.PUBLISH_MAX_ATTEMPTS,
                base_delay_s=settings.PUBLISH_RETRY_BASE_DELAY_S,
            )
            published.append(module.id)
        except PublicationFailure as failure:
            failed[module.id] = failure.to_dict()
    return {"published": published, "failed": failed}


def main(argv: list[str] | None = None) -> int:
    """Point d'entrée: lit le JSON et publie les modules."""
    parser = argparse.ArgumentParser(description="Publication en lot de modules")
    parser.add_argument("path", type=Path, help="Chemin du fichier JSON de modules")
    args = parser.parse_args(argv)

    setup_logging()
    items = load_modules(args.path)
    if not items:
        print(f"[publish] aucun module chargé depuis {args.path}")
        return 0
    report = publish_all(Container(), items)
    print(
        f"[publish] publiés: {len(report['published'])}, "
        f"en échec: {len(report['failed'])} depuis {args.path}"
    )
    for module_id, details in report["failed"].items():
        print(f"[publish] {module_id}: {details['stage']}/{details['kind']} {details['message']}")
    return 1 if report["failed"] else 0


if __name__ == "__main__":
    sys.exit(main())
