"""
Base Pydantic schemas.

This module contains base schemas and GeoJSON envelopes shared by the layer
and climate responses.
"""

from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """
    Base schema with common configuration.

    All other schemas should inherit from this class.
    """

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class Feature(BaseSchema):
    """GeoJSON Feature with free-form properties."""

    type: Literal["Feature"] = "Feature"
    geometry: Optional[Dict[str, Any]] = None
    properties: Dict[str, Any]


class FeatureCollection(BaseSchema):
    """GeoJSON FeatureCollection."""

    type: Literal["FeatureCollection"] = "FeatureCollection"
    features: List[Feature]
