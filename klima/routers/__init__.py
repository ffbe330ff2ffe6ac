# API routers package

from klima.routers.climate import router as climate_router
from klima.routers.layers import router as layers_router

__all__ = ["climate_router", "layers_router"]
