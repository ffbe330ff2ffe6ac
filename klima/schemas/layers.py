"""
Layer schemas.

Layer features carry the display name under ``properties.nazev``, which is
what the map client binds its popups and autocomplete to.
"""

from typing import List

from klima.schemas.base import BaseSchema, Feature, FeatureCollection


class LayerFeatureCollection(FeatureCollection):
    """Polygons of one map layer."""

    features: List[Feature]


class LayerNamesResponse(BaseSchema):
    """Sorted distinct names of one map layer."""

    layer: str
    names: List[str]
