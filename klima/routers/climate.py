"""
Climate router.

This module provides the climate endpoints used by the map client:
- metadata (indicators with their periods) and available years
- choropleth GeoJSON for an (indicator, year, period) selection
- per-area time series for the detail panel and chart
- aggregation over a protected area (CHKO) or ORP region

Every indicator/period pair is resolved against the metadata snapshot before
a query is built; unresolvable pairs are client errors (400).
"""

from fastapi import APIRouter, Depends, Path, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from slowapi import Limiter
from slowapi.util import get_remote_address

from klima.config import settings
from klima.crud.climate import AREA_KINDS, climate as climate_crud, summarize_values
from klima.crud.metadata import ClimateMetadata, ClimateMetadataResolver
from klima.database import get_db
from klima.dependencies.metadata import get_climate_metadata, get_metadata_resolver
from klima.schemas.climate import (
    AggregateResponse,
    ChoroplethResponse,
    ClimateMetaResponse,
    TimeSeriesResponse,
    YearsResponse,
)
from klima.utils.cache import CHOROPLETH_PATTERN, cache, choropleth_cache_key
from klima.utils.indicators import describe_indicator
from klima.utils.logging_config import get_logger
from klima.utils.periods import parse_period, reduce_series

logger = get_logger(__name__)

router = APIRouter(
    prefix="/climate",
    tags=["Climate"],
    responses={
        400: {"description": "Bad request - Unknown indicator, period or combination"},
        404: {"description": "No data for the requested parameters"},
        503: {"description": "Data source unavailable"},
    },
)

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

RATE_LIMIT = f"{settings.RATE_LIMIT_REQUESTS}/{settings.RATE_LIMIT_WINDOW}seconds"


def indicator_query():
    return Query(
        ...,
        min_length=1,
        description="Indicator key (e.g., 'tavg', 'sra', 'pet')",
        examples=["tavg"],
    )


def period_query():
    return Query(
        ...,
        min_length=1,
        description="Period code: 'm1'..'m12' or 'year'",
        examples=["m7"],
    )


def year_query():
    return Query(..., ge=1800, le=2200, description="Calendar year", examples=[2015])


# ============================================================================
# METADATA
# ============================================================================

@router.get("/meta", response_model=ClimateMetaResponse)
@limiter.limit(RATE_LIMIT)
async def get_climate_meta(
    request: Request,
    refresh: bool = Query(
        False,
        description="Re-read the schema instead of using the cached snapshot",
    ),
    resolver: ClimateMetadataResolver = Depends(get_metadata_resolver),
    db: AsyncSession = Depends(get_db),
):
    """
    Get the available indicators and their periods.

    Periods are listed with months ascending and ``year`` last. The map
    client calls this once at startup to fill the indicator and period
    dropdowns. ``refresh=true`` drops the cached snapshot (and cached
    choropleths) after a dataset reload.

    **Example request**:
    ```
    GET /api/climate/meta
    ```
    """
    if refresh:
        cache.clear_pattern(CHOROPLETH_PATTERN)
    metadata = await resolver.get(db, refresh=refresh)

    details = {}
    for key, entry in metadata.indicators.items():
        info = describe_indicator(key)
        details[key] = {"label": info.label, "unit": info.unit, "monthly": entry.has_monthly}

    return {"indicators": metadata.indicator_periods(), "details": details}


@router.get("/years", response_model=YearsResponse)
@limiter.limit(RATE_LIMIT)
async def get_climate_years(
    request: Request,
    metadata: ClimateMetadata = Depends(get_climate_metadata),
):
    """
    Get the distinct years on record, ascending.

    **Example request**:
    ```
    GET /api/climate/years
    ```
    """
    return {"years": metadata.years}


# ============================================================================
# CHOROPLETH
# ============================================================================

@router.get("/map", response_model=ChoroplethResponse)
@limiter.limit(RATE_LIMIT)
async def get_climate_map(
    request: Request,
    indicator: str = indicator_query(),
    year: int = year_query(),
    period: str = period_query(),
    metadata: ClimateMetadata = Depends(get_climate_metadata),
    db: AsyncSession = Depends(get_db),
):
    """
    Get choropleth data for an indicator, year and period.

    Returns one feature per climate area with a finite value; areas whose
    value is null or infinite are left out. An empty feature collection
    (summary count 0) means there is no data for the selection.

    **Example request**:
    ```
    GET /api/climate/map?indicator=tavg&year=2015&period=m7
    ```

    Raises:
        InvalidRequestError: 400 if the indicator/period pair does not resolve
            or the year is not on record
    """
    logger.info(f"Choropleth request: indicator={indicator}, year={year}, period={period}")
    selected = parse_period(period)
    metadata.require_year(year)

    cache_key = choropleth_cache_key(indicator, year, selected.code)
    cached = cache.get(cache_key)
    if cached is not None:
        return cached

    rows = await climate_crud.query_choropleth(db, metadata, indicator, year, selected)
    features = [
        {
            "type": "Feature",
            "geometry": row.geometry,
            "properties": {
                "areaid": row.areaid,
                "name": row.name.display,
                "NAZ_OBEC": row.name.municipality,
                "NAZ_KU": row.name.cadastral,
                "year": row.year,
                "value": row.value,
            },
        }
        for row in rows
    ]

    response = ChoroplethResponse(
        features=features,
        indicator=indicator,
        year=year,
        period=selected.code,
        period_label=selected.label,
        unit=describe_indicator(indicator).unit,
        summary=summarize_values([row.value for row in rows]),
    )
    payload = response.model_dump(mode="json")
    cache.set(cache_key, payload, ttl=settings.CACHE_TTL_CHOROPLETH)
    return payload


# ============================================================================
# AREA TIME SERIES
# ============================================================================

@router.get("/detail/{areaid}", response_model=TimeSeriesResponse)
@limiter.limit(RATE_LIMIT)
async def get_climate_detail(
    request: Request,
    areaid: int = Path(..., description="Climate area identifier", examples=[1024]),
    indicator: str = indicator_query(),
    period: str = period_query(),
    metadata: ClimateMetadata = Depends(get_climate_metadata),
    db: AsyncSession = Depends(get_db),
):
    """
    Get the time series of one climate area.

    ``timeSeries`` maps each year to twelve monthly values (null where
    missing) for monthly indicators, or to one annual value for annual-only
    indices. ``reduced`` holds one value per year for the requested period:
    the selected month, or for ``year`` the mean of the finite months.

    **Example request**:
    ```
    GET /api/climate/detail/1024?indicator=tavg&period=year
    ```

    Raises:
        InvalidRequestError: 400 for an unknown indicator or unsupported period
        NotFoundError: 404 if the area has no records
    """
    selected = parse_period(period)
    series = await climate_crud.query_area_time_series(db, metadata, areaid, indicator)
    reduced = reduce_series(series.series, selected, indicator)

    return TimeSeriesResponse(
        areaid=series.areaid,
        name=series.name.display,
        municipality_name=series.name.municipality,
        cadastral_name=series.name.cadastral,
        indicator=series.indicator,
        monthly=series.monthly,
        time_series=series.series,
        period=selected.code,
        reduced=reduced,
    )


# ============================================================================
# ADMINISTRATIVE AGGREGATION
# ============================================================================

@router.get("/{kind}/{name}", response_model=AggregateResponse)
@limiter.limit(RATE_LIMIT)
async def get_climate_aggregate(
    request: Request,
    kind: str = Path(..., description=f"Area kind, one of: {', '.join(AREA_KINDS)}", examples=["orp"]),
    name: str = Path(..., description="Administrative area name", examples=["Benešov"]),
    indicator: str = indicator_query(),
    year: int = year_query(),
    period: str = period_query(),
    metadata: ClimateMetadata = Depends(get_climate_metadata),
    db: AsyncSession = Depends(get_db),
):
    """
    Aggregate climate values over a CHKO or ORP area.

    Counts the climate areas intersecting the named area that have a
    finite value, with their mean, minimum and maximum.

    **Example request**:
    ```
    GET /api/climate/orp/Benešov?indicator=tavg&year=2015&period=year
    ```

    Raises:
        InvalidRequestError: 400 for an unknown kind, an unresolvable pair
            or a year not on record
        NotFoundError: 404 if no intersecting climate area has data
    """
    logger.info(
        f"Aggregate request: {kind}/{name}, indicator={indicator}, year={year}, period={period}"
    )
    selected = parse_period(period)
    metadata.require_year(year)
    result = await climate_crud.query_aggregate(
        db, metadata, name, kind, indicator, year, selected
    )
    return AggregateResponse(
        name=result.area_name,
        kind=result.area_kind,
        indicator=result.indicator,
        year=result.year,
        period=result.period.code,
        period_label=result.period.label,
        count=result.count,
        mean=result.mean,
        min=result.min,
        max=result.max,
    )
