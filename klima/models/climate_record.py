"""
Climate record database model.

One row per (areaid, year) in ``climate_master_geom``. Besides the fixed
columns mapped here the table is wide: every indicator contributes monthly
columns (``tavg_m1`` .. ``tavg_m12``), an annual column (``tavg_avg``) or a
bare annual index column (``pet``). Those indicator columns are discovered at
runtime by the metadata resolver and are never mapped statically, so the
dataset can gain indicators without a code change.
"""

from sqlalchemy import Column, Integer, String, UniqueConstraint, func
from sqlalchemy.ext.hybrid import hybrid_property

from klima.models.base import LayerModel


class ClimateRecord(LayerModel):
    """
    Climate measurements for one climate area and one year.

    The area name comes from either the municipality name or the cadastral
    name column; a row populates one of them.
    """

    __tablename__ = "climate_master_geom"

    areaid = Column(Integer, nullable=False, index=True, comment="Stable climate area identifier")
    year = Column(Integer, nullable=False, index=True, comment="Calendar year")
    municipality_name = Column("NAZ_OBEC", String(254), nullable=True, comment="Municipality name")
    cadastral_name = Column("NAZ_KU", String(254), nullable=True, comment="Cadastral territory name")

    __table_args__ = (
        UniqueConstraint("areaid", "year", name="uq_climate_area_year"),
    )

    @hybrid_property
    def display_name(self):
        """Municipality name, falling back to the cadastral name."""
        return self.municipality_name or self.cadastral_name

    @display_name.expression
    def display_name(cls):
        return func.coalesce(cls.municipality_name, cls.cadastral_name)

    def __repr__(self):
        return f"<ClimateRecord(areaid={self.areaid}, year={self.year})>"


# Columns that are never indicator values
FIXED_COLUMNS = frozenset(c.name for c in ClimateRecord.__table__.columns)
