# Pydantic schemas package

from klima.schemas.base import BaseSchema, Feature, FeatureCollection
from klima.schemas.layers import LayerFeatureCollection, LayerNamesResponse
from klima.schemas.climate import (
    AggregateResponse, ChoroplethResponse, ChoroplethSummary,
    ClimateMetaResponse, IndicatorDetail, TimeSeriesResponse, YearsResponse,
)

__all__ = [
    # Base schemas
    "BaseSchema", "Feature", "FeatureCollection",

    # Layer schemas
    "LayerFeatureCollection", "LayerNamesResponse",

    # Climate schemas
    "AggregateResponse", "ChoroplethResponse", "ChoroplethSummary",
    "ClimateMetaResponse", "IndicatorDetail", "TimeSeriesResponse", "YearsResponse",
]
