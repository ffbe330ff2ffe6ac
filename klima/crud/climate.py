"""
Climate column resolution and query planning.

This module is the single place where an (indicator, period) request is
turned into a stored column and where climate predicates are assembled.
Column identifiers placed into SQL always come from the metadata map built
out of the actual schema, never from the request text.

Three query shapes are provided:
- choropleth: one value per climate area for a year and period
- area time series: all years for one area, full monthly granularity
- aggregate: count/mean/min/max over climate areas intersecting an
  administrative polygon

Null and non-finite values are treated as absent. They are filtered in SQL
(null, +/-Infinity, and NaN on PostgreSQL) and re-checked in memory before
anything is returned.
"""

import json
import math
from typing import Any, Dict, List, NamedTuple, Optional, Type

from sqlalchemy import Boolean, Float, and_, column, distinct, func, literal, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnClause, ColumnElement

from klima.config import settings
from klima.core.errors import InvalidRequestError, NotFoundError, UnsupportedCombinationError
from klima.crud.base import CRUDBase, dialect_name, execute
from klima.crud.metadata import ClimateMetadata, IndicatorPeriods
from klima.models.administrative_area import ExtendedCompetenceRegion, ProtectedArea
from klima.models.base import LayerModel
from klima.models.climate_record import ClimateRecord
from klima.utils.logging_config import get_logger
from klima.utils.periods import Period, SeriesValue, finite_or_none

logger = get_logger(__name__)

POSITIVE_INFINITY = float("inf")
NEGATIVE_INFINITY = float("-inf")

# Administrative areas usable as aggregation boundaries
AREA_KINDS: Dict[str, Type[LayerModel]] = {
    "chko": ProtectedArea,
    "orp": ExtendedCompetenceRegion,
}


# ============================================================================
# RESULT TYPES
# ============================================================================

class AreaName(NamedTuple):
    """
    Name of a climate area.

    A record carries either a municipality name or a cadastral name. The
    display name prefers the municipality name.
    """

    municipality: Optional[str]
    cadastral: Optional[str]

    @property
    def display(self) -> Optional[str]:
        return self.municipality or self.cadastral


class ChoroplethRow(NamedTuple):
    """One climate area value for a choropleth map."""

    areaid: int
    name: AreaName
    year: int
    value: float
    geometry: Optional[Dict[str, Any]]


class AreaTimeSeries(NamedTuple):
    """
    All years on record for one climate area and indicator.

    ``series`` maps year -> twelve monthly values when ``monthly`` is True,
    otherwise year -> single annual value. Years are ascending.
    """

    areaid: int
    name: AreaName
    indicator: str
    monthly: bool
    series: Dict[int, SeriesValue]


class AggregationResult(NamedTuple):
    """Statistics of climate areas intersecting one administrative area."""

    area_name: str
    area_kind: str
    indicator: str
    year: int
    period: Period
    count: int
    mean: float
    min: float
    max: float


# ============================================================================
# COLUMN RESOLUTION
# ============================================================================

def get_indicator(metadata: ClimateMetadata, indicator: str, period_code: str = "") -> IndicatorPeriods:
    """
    Look up an indicator in the metadata map.

    Raises:
        UnsupportedCombinationError: if the indicator is not stored
    """
    entry = metadata.indicators.get(indicator)
    if entry is None:
        raise UnsupportedCombinationError(indicator, period_code, "unknown indicator")
    return entry


def resolve_column(metadata: ClimateMetadata, indicator: str, period: Period) -> str:
    """
    Resolve an (indicator, period) pair to the stored column name.

    Pure function of the metadata snapshot; no default column is ever
    substituted.

    Args:
        metadata: metadata snapshot (the allow-list)
        indicator: indicator key, e.g. ``tavg``
        period: requested period

    Returns:
        Stored column name, e.g. ``tavg_m7``, ``tavg_avg`` or ``pet``

    Raises:
        UnsupportedCombinationError: unknown indicator, month outside 1..12,
            month requested for an annual-only indicator, or no stored column

    Example:
        >>> resolve_column(metadata, "tavg", Period.of_month(7))
        'tavg_m7'
    """
    entry = get_indicator(metadata, indicator, period.code)

    if not period.is_annual:
        if not period.is_valid_month:
            raise UnsupportedCombinationError(indicator, period.code, "month must be within 1..12")
        if not entry.has_monthly:
            raise UnsupportedCombinationError(
                indicator, period.code, "indicator has annual values only"
            )

    stored = entry.columns.get(period)
    if stored is None:
        raise UnsupportedCombinationError(indicator, period.code, "no stored column for this period")
    return stored


def value_column(name: str) -> ColumnClause:
    """Column expression for a resolved indicator column."""
    return column(name, Float)


def finite_value_filter(value: ColumnElement, dialect: str) -> ColumnElement:
    """
    Predicate keeping rows whose value is a finite number.

    NaN is only filtered in SQL on PostgreSQL, where NaN compares equal to
    itself; other backends store NaN as NULL.
    """
    clauses = [
        value.isnot(None),
        value.not_in([POSITIVE_INFINITY, NEGATIVE_INFINITY]),
    ]
    if dialect == "postgresql":
        clauses.append(value != literal(float("nan"), Float))
    return and_(*clauses)


def _load_geometry(raw) -> Optional[Dict[str, Any]]:
    if raw is None:
        return None
    if isinstance(raw, dict):
        return raw
    return json.loads(raw)


# ============================================================================
# QUERIES
# ============================================================================

class CRUDClimate(CRUDBase[ClimateRecord]):
    """Climate queries: choropleth, area time series, spatial aggregate."""

    async def query_choropleth(
        self,
        db: AsyncSession,
        metadata: ClimateMetadata,
        indicator: str,
        year: int,
        period: Period,
        with_geometry: bool = True,
    ) -> List[ChoroplethRow]:
        """
        Get one value per climate area for a year and period.

        Rows whose value is null or non-finite are excluded. An empty list
        means there is no data for these parameters; it is not an error.

        Args:
            db: Database session
            metadata: metadata snapshot
            indicator: indicator key
            year: calendar year
            period: month or annual period
            with_geometry: include GeoJSON geometry in the output SRID

        Returns:
            List of ChoroplethRow ordered by areaid

        Raises:
            UnsupportedCombinationError: if the pair does not resolve
            DataSourceError: if the query fails
        """
        stored = resolve_column(metadata, indicator, period)
        value = value_column(stored)
        model = self.model

        selected = [
            model.areaid,
            model.municipality_name.label("municipality_name"),
            model.cadastral_name.label("cadastral_name"),
            model.year,
            value.label("value"),
        ]
        if with_geometry:
            selected.append(
                func.ST_AsGeoJSON(func.ST_Transform(model.geom, settings.OUTPUT_SRID)).label("geometry")
            )

        stmt = (
            select(*selected)
            .where(model.year == year, finite_value_filter(value, dialect_name(db)))
            .order_by(model.areaid)
        )
        result = await execute(db, stmt)

        rows: List[ChoroplethRow] = []
        skipped = 0
        for row in result.mappings():
            number = finite_or_none(row["value"])
            if number is None:
                skipped += 1
                continue
            rows.append(ChoroplethRow(
                areaid=row["areaid"],
                name=AreaName(row["municipality_name"], row["cadastral_name"]),
                year=row["year"],
                value=number,
                geometry=_load_geometry(row["geometry"]) if with_geometry else None,
            ))

        if skipped:
            logger.warning(f"Dropped {skipped} non-finite values from {stored} for {year}")
        logger.info(f"Choropleth {indicator}/{period.code}/{year}: {len(rows)} areas (column {stored})")
        return rows

    async def query_area_time_series(
        self,
        db: AsyncSession,
        metadata: ClimateMetadata,
        areaid: int,
        indicator: str,
    ) -> AreaTimeSeries:
        """
        Get every year on record for one climate area.

        Monthly-capable indicators always return twelve values per year,
        null-padded for missing months and with non-finite values as null;
        annual-only indicators return a single value per year. Reducing to a
        period is left to the caller (see klima.utils.periods).

        Args:
            db: Database session
            metadata: metadata snapshot
            areaid: climate area identifier
            indicator: indicator key

        Returns:
            AreaTimeSeries with years ascending

        Raises:
            UnsupportedCombinationError: if the indicator is unknown
            NotFoundError: if the area has no records
            DataSourceError: if the query fails
        """
        entry = get_indicator(metadata, indicator)
        model = self.model

        if entry.has_monthly:
            month_columns = {
                month: entry.columns.get(Period.of_month(month))
                for month in range(1, 13)
            }
            value_labels = [
                value_column(name).label(f"m{month}")
                for month, name in month_columns.items() if name is not None
            ]
        else:
            annual = resolve_column(metadata, indicator, Period.annual())
            value_labels = [value_column(annual).label("value")]

        stmt = (
            select(
                model.year,
                model.municipality_name.label("municipality_name"),
                model.cadastral_name.label("cadastral_name"),
                *value_labels,
            )
            .where(model.areaid == areaid)
            .order_by(model.year)
        )
        result = await execute(db, stmt)
        rows = result.mappings().all()
        if not rows:
            raise NotFoundError(f"Climate area {areaid} not found")

        series: Dict[int, SeriesValue] = {}
        for row in rows:
            if entry.has_monthly:
                series[row["year"]] = [
                    finite_or_none(row[f"m{month}"]) if name is not None else None
                    for month, name in month_columns.items()
                ]
            else:
                series[row["year"]] = finite_or_none(row["value"])

        first = rows[0]
        return AreaTimeSeries(
            areaid=areaid,
            name=AreaName(first["municipality_name"], first["cadastral_name"]),
            indicator=indicator,
            monthly=entry.has_monthly,
            series=series,
        )

    async def query_aggregate(
        self,
        db: AsyncSession,
        metadata: ClimateMetadata,
        area_name: str,
        area_kind: str,
        indicator: str,
        year: int,
        period: Period,
    ) -> AggregationResult:
        """
        Aggregate climate values over an administrative area.

        Climate areas count once each, however many polygons of the named
        administrative area they intersect.

        Args:
            db: Database session
            metadata: metadata snapshot
            area_name: administrative area name
            area_kind: ``chko`` or ``orp``
            indicator: indicator key
            year: calendar year
            period: month or annual period

        Returns:
            AggregationResult with count > 0

        Raises:
            InvalidRequestError: if the area kind is unknown
            UnsupportedCombinationError: if the pair does not resolve
            NotFoundError: if no intersecting climate area has a finite value
            DataSourceError: if the query fails
        """
        admin = AREA_KINDS.get(area_kind)
        if admin is None:
            raise InvalidRequestError(
                f"Unknown area kind '{area_kind}'. Use one of: {', '.join(AREA_KINDS)}"
            )

        stored = resolve_column(metadata, indicator, period)
        value = value_column(stored)
        model = self.model

        intersects = (
            select(literal(1))
            .where(
                admin.name == area_name,
                func.ST_Intersects(model.geom, admin.geom, type_=Boolean),
            )
            .exists()
        )
        stmt = select(
            func.count(distinct(model.areaid)).label("count"),
            func.avg(value).label("mean"),
            func.min(value).label("min"),
            func.max(value).label("max"),
        ).where(
            model.year == year,
            finite_value_filter(value, dialect_name(db)),
            intersects,
        )
        result = await execute(db, stmt)
        row = result.mappings().one()

        count = int(row["count"] or 0)
        stats = [finite_or_none(row[key]) for key in ("mean", "min", "max")]
        if count == 0 or any(v is None for v in stats):
            raise NotFoundError(
                f"No climate data for {area_kind.upper()} '{area_name}' "
                f"({indicator}, {period.code}, {year})"
            )

        mean, minimum, maximum = stats
        logger.info(
            f"Aggregate {area_kind}/{area_name} {indicator}/{period.code}/{year}: "
            f"count={count} mean={mean:.3f}"
        )
        return AggregationResult(
            area_name=area_name,
            area_kind=area_kind,
            indicator=indicator,
            year=year,
            period=period,
            count=count,
            mean=mean,
            min=minimum,
            max=maximum,
        )


climate = CRUDClimate(ClimateRecord)


def summarize_values(values: List[float]) -> Dict[str, Optional[float]]:
    """
    Count, min, max and mean of finite values.

    Example:
        >>> summarize_values([1.0, 3.0])
        {'count': 2, 'min': 1.0, 'max': 3.0, 'mean': 2.0}
    """
    finite = [v for v in values if v is not None and math.isfinite(v)]
    if not finite:
        return {"count": 0, "min": None, "max": None, "mean": None}
    return {
        "count": len(finite),
        "min": min(finite),
        "max": max(finite),
        "mean": sum(finite) / len(finite),
    }
