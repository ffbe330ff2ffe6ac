"""
Map layers router.

Serves the protected-area, extended-competence, cadastral and climate
polygon layers as GeoJSON for the map client's layer toggles.
"""

from fastapi import APIRouter, Depends, Path, Request
from sqlalchemy.ext.asyncio import AsyncSession
from slowapi import Limiter
from slowapi.util import get_remote_address

from klima.config import settings
from klima.crud.layers import LAYERS, get_layer
from klima.database import get_db
from klima.schemas.layers import LayerFeatureCollection, LayerNamesResponse
from klima.utils.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/layers",
    tags=["Map Layers"],
    responses={
        400: {"description": "Bad request - Unknown layer"},
        503: {"description": "Data source unavailable"},
    },
)

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

LAYER_PATH = Path(
    ...,
    description=f"Layer name, one of: {', '.join(LAYERS)}",
    examples=["orp"],
)


@router.get("/{layer}", response_model=LayerFeatureCollection)
@limiter.limit(f"{settings.RATE_LIMIT_REQUESTS}/{settings.RATE_LIMIT_WINDOW}seconds")
async def get_layer_features(
    request: Request,
    layer: str = LAYER_PATH,
    db: AsyncSession = Depends(get_db),
):
    """
    Get all polygons of a map layer.

    Geometries are transformed to WGS84 (EPSG:4326) for Leaflet. Each
    feature carries its display name in ``properties.nazev``. The climate
    layer is limited to the latest year and capped at CLIMATE_LAYER_LIMIT
    features.

    **Example request**:
    ```
    GET /api/layers/chko
    ```

    Raises:
        InvalidRequestError: 400 if the layer is not served
    """
    crud = get_layer(layer)
    features = await crud.get_features(db)
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "geometry": f.geometry,
                "properties": {"nazev": f.name},
            }
            for f in features
        ],
    }


@router.get("/{layer}/names", response_model=LayerNamesResponse)
@limiter.limit(f"{settings.RATE_LIMIT_REQUESTS}/{settings.RATE_LIMIT_WINDOW}seconds")
async def get_layer_names(
    request: Request,
    layer: str = LAYER_PATH,
    db: AsyncSession = Depends(get_db),
):
    """
    Get the sorted distinct names of a map layer.

    Used by the territory search box for autocomplete.

    Raises:
        InvalidRequestError: 400 if the layer is not served
    """
    crud = get_layer(layer)
    names = await crud.get_names(db)
    logger.info(f"Layer {layer}: {len(names)} names")
    return {"layer": layer, "names": names}
