"""
Climate metadata dependencies.

The metadata resolver is owned by the application (``app.state``); routes
receive it, or the current snapshot, through these dependencies.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from klima.crud.metadata import ClimateMetadata, ClimateMetadataResolver
from klima.database import get_db


def get_metadata_resolver(request: Request) -> ClimateMetadataResolver:
    """
    Get the application's metadata resolver.

    Args:
        request: FastAPI request object

    Returns:
        The resolver stored on ``app.state.metadata_resolver``
    """
    return request.app.state.metadata_resolver


async def get_climate_metadata(
    resolver: ClimateMetadataResolver = Depends(get_metadata_resolver),
    db: AsyncSession = Depends(get_db),
) -> ClimateMetadata:
    """
    Get the current metadata snapshot, loading it on first use.

    Raises:
        DataSourceError: if the schema cannot be read
    """
    return await resolver.get(db)
