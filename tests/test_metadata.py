"""
Tests for climate metadata discovery and the metadata resolver.
"""

import pytest
from sqlalchemy import FLOAT, INTEGER, NUMERIC, REAL, TEXT, VARCHAR
from sqlalchemy.dialects.postgresql import DOUBLE_PRECISION
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.types import NullType

from klima.core.errors import DataSourceError, InvalidRequestError
from klima.crud.metadata import (
    ClimateMetadata,
    ClimateMetadataResolver,
    build_indicator_periods,
    climate_metadata,
    is_numeric_type,
)
from klima.utils.periods import Period


class TestBuildIndicatorPeriods:
    """Tests for grouping column names into indicators."""

    def test_months_ascending_year_last(self):
        columns = ["tavg_avg", "tavg_m2", "tavg_m1", "tavg_m10", "sra_m1"]
        result = build_indicator_periods(columns)
        assert result["tavg"].period_codes == ["m1", "m2", "m10", "year"]
        assert result["sra"].period_codes == ["m1"]

    def test_order_independent_of_scan_order(self):
        columns = ["tavg_avg"] + [f"tavg_m{n}" for n in range(12, 0, -1)]
        expected = [f"m{n}" for n in range(1, 13)] + ["year"]
        assert build_indicator_periods(columns)["tavg"].period_codes == expected
        assert build_indicator_periods(reversed(columns))["tavg"].period_codes == expected

    def test_annual_index_columns(self):
        result = build_indicator_periods(["de_martonne", "pet", "heat_index"])
        for key in ("de_martonne", "pet", "heat_index"):
            assert result[key].period_codes == ["year"]
            assert not result[key].has_monthly
            assert result[key].columns[Period.annual()] == key

    def test_out_of_range_months_ignored(self):
        result = build_indicator_periods(["wv_m0", "wv_m13", "rh_m12"])
        assert "wv" not in result
        assert result["rh"].period_codes == ["m12"]

    def test_fixed_and_unrelated_columns_ignored(self):
        result = build_indicator_periods(["gid", "areaid", "year", "shape_length"])
        assert result == {}

    def test_stored_column_recorded(self):
        result = build_indicator_periods(["TAVG_M7"])
        assert result["tavg"].columns[Period.of_month(7)] == "TAVG_M7"


@pytest.mark.asyncio
async def test_list_indicator_periods(db_session):
    """Test discovery against the seeded climate table."""
    indicators = await climate_metadata.list_indicator_periods(db_session)

    assert sorted(indicators) == ["de_martonne", "pet", "sra", "tavg"]
    assert indicators["tavg"].period_codes == [f"m{n}" for n in range(1, 13)] + ["year"]
    assert indicators["sra"].period_codes == [f"m{n}" for n in range(1, 7)]
    assert indicators["de_martonne"].period_codes == ["year"]


@pytest.mark.asyncio
async def test_list_available_years(db_session):
    """Test distinct years come back ascending."""
    years = await climate_metadata.list_available_years(db_session)
    assert years == [2014, 2015]


@pytest.mark.asyncio
async def test_resolver_caches_snapshot(db_session):
    """Test the snapshot is loaded once and reused until invalidated."""
    resolver = ClimateMetadataResolver()
    assert not resolver.is_loaded

    first = await resolver.get(db_session)
    second = await resolver.get(db_session)
    assert resolver.is_loaded
    assert first is second
    assert first.indicator_periods()["pet"] == ["year"]

    resolver.invalidate()
    assert not resolver.is_loaded
    third = await resolver.get(db_session)
    assert third is not first
    assert third.years == first.years

    refreshed = await resolver.get(db_session, refresh=True)
    assert refreshed is not third


@pytest.mark.asyncio
async def test_resolver_unreachable_store(tmp_path):
    """Test an unreachable store raises DataSourceError and caches nothing."""
    broken = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'x.db'}")
    resolver = ClimateMetadataResolver()

    async with AsyncSession(broken) as session:
        with pytest.raises(DataSourceError):
            await resolver.get(session)

    assert not resolver.is_loaded
    await broken.dispose()


@pytest.mark.parametrize("type_", [REAL(), DOUBLE_PRECISION(), FLOAT(), NUMERIC(10, 2), INTEGER()])
def test_reflected_numeric_types(type_):
    """Floating point columns count as numeric on every SQLAlchemy release."""
    assert is_numeric_type(type_)


@pytest.mark.parametrize("type_", [TEXT(), VARCHAR(254), NullType()])
def test_reflected_non_numeric_types(type_):
    assert not is_numeric_type(type_)


@pytest.mark.asyncio
async def test_numeric_columns_include_real_and_double_precision(db_session):
    """REAL and DOUBLE PRECISION indicator columns are discovered; text is not."""
    columns = await climate_metadata.get_numeric_columns(db_session)
    assert "tavg_m7" in columns
    assert "pet" in columns
    assert "remark" not in columns


def test_require_year():
    metadata = ClimateMetadata(indicators={}, years=[2014, 2015])
    assert metadata.require_year(2015) == 2015

    with pytest.raises(InvalidRequestError) as exc_info:
        metadata.require_year(1990)
    assert exc_info.value.detail == "No climate data for year 1990; years on record: 2014-2015"

    with pytest.raises(InvalidRequestError) as exc_info:
        ClimateMetadata(indicators={}, years=[]).require_year(2015)
    assert exc_info.value.detail == "No climate data for year 2015"
