"""SQLAlchemy models for persistence layer (records)."""

from __future__ import annotations

from sqlalchemy import JSON, Column, DateTime, Integer, MetaData, String
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Classe de base pour tous les modèles SQLAlchemy."""

    metadata = MetaData()


class RecordORM(Base):
    """Document du record store, identifié par son chemin complet.

    `version` est géré par l'ORM: chaque UPDATE porte `WHERE version = <lue>` et lève
    `StaleDataError` si une autre transaction a modifié la ligne entre-temps.
    """

    __tablename__ = "records"

    path = Column(String(512), primary_key=True)
    collection_path = Column(String(512), nullable=False, index=True)
    document_id = Column(String(255), nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
