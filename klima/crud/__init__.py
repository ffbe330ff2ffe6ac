# Query operations package

from klima.crud.base import CRUDBase
from klima.crud.metadata import CRUDClimateMetadata, ClimateMetadataResolver, climate_metadata
from klima.crud.climate import CRUDClimate, climate, resolve_column
from klima.crud.layers import CRUDLayer, LAYERS, get_layer

__all__ = [
    "CRUDBase",
    "CRUDClimateMetadata", "ClimateMetadataResolver", "climate_metadata",
    "CRUDClimate", "climate", "resolve_column",
    "CRUDLayer", "LAYERS", "get_layer",
]
