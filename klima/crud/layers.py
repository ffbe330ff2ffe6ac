"""
Polygon layer queries.

Serves the fixed set of named map layers as GeoJSON-ready rows. Layer names
from the request are only used as keys into LAYERS; table and column names
come from the models.
"""

import json
from typing import Any, Dict, List, NamedTuple, Optional

from sqlalchemy import ColumnElement, distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from klima.config import settings
from klima.core.errors import InvalidRequestError
from klima.crud.base import CRUDBase, execute
from klima.models import CadastralUnit, ClimateRecord, ExtendedCompetenceRegion, ProtectedArea
from klima.utils.logging_config import get_logger

logger = get_logger(__name__)


class LayerFeature(NamedTuple):
    """One polygon of a layer."""

    name: Optional[str]
    geometry: Optional[Dict[str, Any]]


class CRUDLayer(CRUDBase):
    """
    Read operations for one polygon layer.

    Args:
        model: layer model
        name_column: column or SQL expression giving the display name
        limit: maximum number of features served, None for all
        latest_year_only: for per-year tables, serve only the latest year
    """

    def __init__(
        self,
        model,
        name_column: ColumnElement,
        limit: Optional[int] = None,
        latest_year_only: bool = False,
    ):
        super().__init__(model)
        self.name_column = name_column
        self.limit = limit
        self.latest_year_only = latest_year_only

    def _scope(self, stmt):
        if self.latest_year_only:
            latest = select(func.max(self.model.year)).correlate(None).scalar_subquery()
            stmt = stmt.where(self.model.year == latest)
        return stmt

    async def get_features(self, db: AsyncSession) -> List[LayerFeature]:
        """
        Get the layer polygons in the output SRID with their names.

        Raises:
            DataSourceError: if the query fails
        """
        geometry = func.ST_AsGeoJSON(func.ST_Transform(self.model.geom, settings.OUTPUT_SRID))
        stmt = self._scope(
            select(geometry.label("geometry"), self.name_column.label("name"))
            .order_by(self.model.gid)
        )
        if self.limit is not None:
            stmt = stmt.limit(self.limit)

        result = await execute(db, stmt)
        features = [
            LayerFeature(
                name=row["name"],
                geometry=json.loads(row["geometry"]) if isinstance(row["geometry"], str) else row["geometry"],
            )
            for row in result.mappings()
        ]
        logger.info(f"Layer {self.table_name}: {len(features)} features")
        return features

    async def get_names(self, db: AsyncSession) -> List[str]:
        """
        Get the sorted distinct non-null names of the layer.

        Raises:
            DataSourceError: if the query fails
        """
        stmt = self._scope(
            select(distinct(self.name_column))
            .where(self.name_column.isnot(None))
            .order_by(self.name_column)
        )
        result = await execute(db, stmt)
        return list(result.scalars().all())


LAYERS: Dict[str, CRUDLayer] = {
    "chko": CRUDLayer(ProtectedArea, ProtectedArea.name),
    "orp": CRUDLayer(ExtendedCompetenceRegion, ExtendedCompetenceRegion.name),
    "ku": CRUDLayer(CadastralUnit, CadastralUnit.name),
    "climate": CRUDLayer(
        ClimateRecord,
        ClimateRecord.display_name,
        limit=settings.CLIMATE_LAYER_LIMIT,
        latest_year_only=True,
    ),
}


def get_layer(name: str) -> CRUDLayer:
    """
    Look up a layer by its public name.

    Raises:
        InvalidRequestError: if the layer is not served
    """
    layer = LAYERS.get(name)
    if layer is None:
        raise InvalidRequestError(
            f"Invalid layer name '{name}'. Allowed layers: {', '.join(LAYERS)}"
        )
    return layer
