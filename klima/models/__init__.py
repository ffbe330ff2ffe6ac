# Database models package

from klima.models.base import Geometry, LayerModel
from klima.models.administrative_area import (
    CadastralUnit,
    ExtendedCompetenceRegion,
    ProtectedArea,
)
from klima.models.climate_record import ClimateRecord

__all__ = [
    "Geometry",
    "LayerModel",
    "ProtectedArea",
    "ExtendedCompetenceRegion",
    "CadastralUnit",
    "ClimateRecord",
]
