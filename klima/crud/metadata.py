"""
Climate metadata resolution.

Discovers which (indicator, period) combinations exist by inspecting the
numeric columns of the climate table, so newly loaded indicators appear
without code changes:

- ``{indicator}_m{n}`` (n in 1..12) -> Month(n) of ``indicator``
- ``{indicator}_avg`` -> Year of ``indicator``
- ``pet``, ``de_martonne``, ``heat_index`` -> Year of the index itself

The resulting map also records the stored column of each combination and is
the allow-list every dynamic column reference is checked against.
"""

import asyncio
import re
import warnings
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from sqlalchemy import Float, Integer, Numeric, distinct, select
from sqlalchemy.exc import SAWarning
from sqlalchemy.ext.asyncio import AsyncSession

from klima.core.errors import InvalidRequestError
from klima.crud.base import CRUDBase, execute, run_inspection
from klima.models.climate_record import FIXED_COLUMNS, ClimateRecord
from klima.utils.indicators import ANNUAL_INDEX_COLUMNS
from klima.utils.logging_config import get_logger
from klima.utils.periods import Period, sort_periods

logger = get_logger(__name__)

_MONTHLY_COLUMN = re.compile(r"^(?P<indicator>[a-z][a-z0-9_]*?)_m(?P<month>\d{1,2})$")
_ANNUAL_COLUMN = re.compile(r"^(?P<indicator>[a-z][a-z0-9_]*?)_avg$")


@dataclass
class IndicatorPeriods:
    """Periods available for one indicator and the column storing each."""

    key: str
    columns: Dict[Period, str] = field(default_factory=dict)

    @property
    def periods(self) -> List[Period]:
        return sort_periods(self.columns)

    @property
    def has_monthly(self) -> bool:
        return any(not p.is_annual for p in self.columns)

    @property
    def period_codes(self) -> List[str]:
        return [p.code for p in self.periods]


@dataclass
class ClimateMetadata:
    """Snapshot of available indicators and years."""

    indicators: Dict[str, IndicatorPeriods]
    years: List[int]

    def indicator_periods(self) -> Dict[str, List[str]]:
        """Indicator key -> ordered period codes, keys sorted."""
        return {key: self.indicators[key].period_codes for key in sorted(self.indicators)}

    def require_year(self, year: int) -> int:
        """
        Check that a year is on record.

        Raises:
            InvalidRequestError: if no climate record carries the year
        """
        if year not in self.years:
            detail = f"No climate data for year {year}"
            if self.years:
                detail += f"; years on record: {self.years[0]}-{self.years[-1]}"
            raise InvalidRequestError(detail)
        return year


# Float is not a Numeric subclass on every SQLAlchemy release
NUMERIC_TYPES = (Float, Numeric, Integer)


def is_numeric_type(type_) -> bool:
    """True for reflected column types that can hold indicator values."""
    return isinstance(type_, NUMERIC_TYPES)


def build_indicator_periods(column_names: Iterable[str]) -> Dict[str, IndicatorPeriods]:
    """
    Group column names into indicators and periods.

    Args:
        column_names: stored numeric column names, in any order

    Returns:
        Indicator key -> IndicatorPeriods

    Example:
        >>> result = build_indicator_periods(["tavg_avg", "tavg_m2", "tavg_m1"])
        >>> result["tavg"].period_codes
        ['m1', 'm2', 'year']
    """
    indicators: Dict[str, IndicatorPeriods] = {}

    def add(indicator: str, period: Period, column: str) -> None:
        entry = indicators.setdefault(indicator, IndicatorPeriods(key=indicator))
        entry.columns.setdefault(period, column)

    for raw in column_names:
        name = raw.lower()
        if name in FIXED_COLUMNS or raw in FIXED_COLUMNS:
            continue

        if name in ANNUAL_INDEX_COLUMNS:
            add(name, Period.annual(), raw)
            continue

        match = _MONTHLY_COLUMN.match(name)
        if match:
            month = int(match.group("month"))
            if 1 <= month <= 12:
                add(match.group("indicator"), Period.of_month(month), raw)
            else:
                logger.debug(f"Ignoring column '{raw}': month {month} out of range")
            continue

        match = _ANNUAL_COLUMN.match(name)
        if match:
            add(match.group("indicator"), Period.annual(), raw)

    return indicators


class CRUDClimateMetadata(CRUDBase[ClimateRecord]):
    """Schema and year discovery for the climate table."""

    async def get_numeric_columns(self, db: AsyncSession) -> List[str]:
        """
        Get the names of numeric columns of the climate table.

        Raises:
            DataSourceError: if the schema cannot be read
        """
        table_name = self.table_name

        def numeric_columns(inspector) -> List[str]:
            with warnings.catch_warnings():
                # PostGIS geometry reflects as an unrecognized type
                warnings.simplefilter("ignore", SAWarning)
                columns = inspector.get_columns(table_name)
            return [c["name"] for c in columns if is_numeric_type(c["type"])]

        return await run_inspection(db, numeric_columns)

    async def list_indicator_periods(self, db: AsyncSession) -> Dict[str, IndicatorPeriods]:
        """
        Enumerate every (indicator, period) combination currently stored.

        Returns:
            Indicator key -> IndicatorPeriods, months ascending and Year last

        Raises:
            DataSourceError: if the schema cannot be read
        """
        columns = await self.get_numeric_columns(db)
        indicators = build_indicator_periods(columns)
        logger.info(
            f"Discovered {len(indicators)} indicators from {len(columns)} numeric columns"
        )
        return indicators

    async def list_available_years(self, db: AsyncSession) -> List[int]:
        """
        Get the distinct years present across all climate records, ascending.

        Raises:
            DataSourceError: if the query fails
        """
        stmt = select(distinct(self.model.year)).where(
            self.model.year.isnot(None)
        ).order_by(self.model.year)
        result = await execute(db, stmt)
        return [int(y) for y in result.scalars().all()]


climate_metadata = CRUDClimateMetadata(ClimateRecord)


class ClimateMetadataResolver:
    """
    Read-through cache of the climate metadata snapshot.

    One instance is owned by the application (``app.state``). The snapshot is
    loaded on first use, shared read-only between requests, and only
    replaced by ``invalidate`` followed by the next read.
    """

    def __init__(self, crud: CRUDClimateMetadata = climate_metadata):
        self._crud = crud
        self._snapshot: Optional[ClimateMetadata] = None
        self._lock = asyncio.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._snapshot is not None

    def invalidate(self) -> None:
        """Drop the cached snapshot; the next read re-inspects the store."""
        if self._snapshot is not None:
            logger.info("Climate metadata snapshot invalidated")
        self._snapshot = None

    async def get(self, db: AsyncSession, refresh: bool = False) -> ClimateMetadata:
        """
        Get the metadata snapshot, loading it if needed.

        Args:
            db: Database session
            refresh: invalidate before reading

        Raises:
            DataSourceError: if the store cannot be read (nothing is cached then)
        """
        if refresh:
            self.invalidate()

        snapshot = self._snapshot
        if snapshot is not None:
            return snapshot

        async with self._lock:
            if self._snapshot is None:
                indicators = await self._crud.list_indicator_periods(db)
                years = await self._crud.list_available_years(db)
                self._snapshot = ClimateMetadata(indicators=indicators, years=years)
                logger.info(
                    f"Climate metadata loaded: {len(indicators)} indicators, {len(years)} years"
                )
            return self._snapshot
