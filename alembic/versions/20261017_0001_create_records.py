# mypy: ignore-errors
"""
Migration Alembic pour créer la table records.

La table stocke les documents du record store (modules et sections) indexés par chemin.
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Crée la table records et l'index par collection."""
    op.create_table(
        "records",
        sa.Column("path", sa.String(length=512), primary_key=True),
        sa.Column("collection_path", sa.String(length=512), nullable=False),
        sa.Column("document_id", sa.String(length=255), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
    )
    op.create_index("ix_records_collection_path", "records", ["collection_path"])


def downgrade() -> None:
    """Supprime la table records."""
    op.drop_index("ix_records_collection_path", table_name="records")
    op.drop_table("records")
