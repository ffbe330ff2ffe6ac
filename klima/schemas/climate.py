"""
Climate schemas.

This module contains Pydantic schemas for climate metadata, choropleth,
time series and aggregation responses.
"""

from typing import Dict, List, Optional, Union
from pydantic import Field

from klima.schemas.base import BaseSchema, FeatureCollection


class IndicatorDetail(BaseSchema):
    """Display metadata of one indicator."""

    label: str
    unit: str
    monthly: bool = Field(..., description="True when monthly values are stored")


class ClimateMetaResponse(BaseSchema):
    """Available indicators and their periods."""

    indicators: Dict[str, List[str]] = Field(
        ...,
        description="Indicator key -> period codes (m1..m12 ascending, 'year' last)",
        examples=[{"tavg": ["m1", "m2", "year"], "pet": ["year"]}],
    )
    details: Dict[str, IndicatorDetail]


class YearsResponse(BaseSchema):
    """Distinct years on record, ascending."""

    years: List[int]


class ChoroplethSummary(BaseSchema):
    """Statistics over all features of a choropleth."""

    count: int
    min: Optional[float] = None
    max: Optional[float] = None
    mean: Optional[float] = None


class ChoroplethResponse(FeatureCollection):
    """
    Choropleth feature collection.

    Feature properties: ``areaid``, ``name``, ``NAZ_OBEC``, ``NAZ_KU``,
    ``year`` and ``value``. ``summary`` is a GeoJSON foreign member.
    """

    indicator: str
    year: int
    period: str
    period_label: str = Field(..., serialization_alias="periodLabel")
    unit: str
    summary: ChoroplethSummary


class TimeSeriesResponse(BaseSchema):
    """Per-year values of one climate area."""

    areaid: int
    name: Optional[str] = None
    municipality_name: Optional[str] = Field(None, serialization_alias="NAZ_OBEC")
    cadastral_name: Optional[str] = Field(None, serialization_alias="NAZ_KU")
    indicator: str
    monthly: bool
    time_series: Dict[int, Union[List[Optional[float]], Optional[float]]] = Field(
        ...,
        serialization_alias="timeSeries",
        description="Year -> 12 monthly values (monthly indicators) or a single annual value",
    )
    period: str
    reduced: Dict[int, Optional[float]] = Field(
        ...,
        description="Year -> value reduced to the requested period",
    )


class AggregateResponse(BaseSchema):
    """Climate statistics over an administrative area."""

    name: str
    kind: str
    indicator: str
    year: int
    period: str
    period_label: str = Field(..., serialization_alias="periodLabel")
    count: int = Field(..., gt=0)
    mean: float
    min: float
    max: float
