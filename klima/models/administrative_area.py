"""
Administrative and cadastral polygon layers.

These tables carry a name and a geometry only. Protected-area regions and
extended-competence regions double as spatial aggregation boundaries for
climate statistics; cadastral units are served as a map layer.
"""

from sqlalchemy import Column, String

from klima.models.base import LayerModel


class ProtectedArea(LayerModel):
    """Protected landscape area (CHKO)."""

    __tablename__ = "chko"

    name = Column("NAZEV", String(254), index=True, comment="Protected area name")


class ExtendedCompetenceRegion(LayerModel):
    """Municipality with extended competence (ORP)."""

    __tablename__ = "orp"

    name = Column("NAZ_ORP", String(254), index=True, comment="ORP name")


class CadastralUnit(LayerModel):
    """Cadastral territory (KU)."""

    __tablename__ = "ku"

    name = Column("NAZ_KU", String(254), index=True, comment="Cadastral territory name")
