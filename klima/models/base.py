"""
Base database model and column types for the spatial layers.

Layer tables are loaded by an external shapefile import (shp2pgsql style:
a ``gid`` primary key and a ``geom`` column), so models here only describe
what the API reads.
"""

from sqlalchemy import Column, Integer
from sqlalchemy.orm import declared_attr
from sqlalchemy.types import UserDefinedType

from klima.database import Base


class Geometry(UserDefinedType):
    """
    PostGIS ``geometry`` column.

    Values are never read directly; queries go through ST_AsGeoJSON /
    ST_Transform / ST_Intersects, so no bind or result processing is needed.
    The column is declared unconstrained: subtype and SRID are whatever the
    shapefile import produced.
    """

    cache_ok = True

    def get_col_spec(self, **kw) -> str:
        return "GEOMETRY"


class LayerModel(Base):
    """
    Base model for a polygon layer.

    Subclasses set ``__tablename__`` and a ``name`` attribute mapped to the
    layer's display name column.
    """

    __abstract__ = True

    gid = Column(Integer, primary_key=True, autoincrement=True)

    @declared_attr
    def geom(cls):
        """Polygon geometry in the source CRS."""
        return Column(Geometry(), nullable=True)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(gid={self.gid}, name={getattr(self, 'name', None)!r})>"
