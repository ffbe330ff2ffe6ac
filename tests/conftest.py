"""
Shared test fixtures.

Tests run against a temporary SQLite database. The PostGIS functions used by
the queries (ST_Transform, ST_AsGeoJSON, ST_Intersects) are registered as
SQLite functions operating on GeoJSON text, with bounding-box intersection.
"""

import asyncio
import json
import os
import tempfile

# Settings are read at import time; configure the environment first
os.environ.setdefault("SQLALCHEMY_DATABASE_URI", "sqlite+aiosqlite:///:memory:")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["REDIS_ENABLED"] = "false"
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "klima-test-logs"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from klima.crud.metadata import ClimateMetadataResolver
from klima.database import Base, get_db
from klima.main import app
from klima.models import CadastralUnit, ExtendedCompetenceRegion, ProtectedArea

INF = float("inf")

TAVG_2015_AREA1 = [-1.0, 0.5, 4.0, 9.0, 13.5, 16.0, 18.5, 18.0, 13.0, 8.0, 3.0, 0.0]


def square(x0, y0, x1, y1):
    """GeoJSON polygon for an axis-aligned rectangle."""
    return json.dumps({
        "type": "Polygon",
        "coordinates": [[[x0, y0], [x1, y0], [x1, y1], [x0, y1], [x0, y0]]],
    })


def _bbox(geojson_text):
    xs, ys = [], []

    def walk(coords):
        if coords and isinstance(coords[0], (int, float)):
            xs.append(coords[0])
            ys.append(coords[1])
        else:
            for c in coords:
                walk(c)

    walk(json.loads(geojson_text)["coordinates"])
    return min(xs), min(ys), max(xs), max(ys)


def bbox_intersects(a, b):
    if a is None or b is None:
        return 0
    ax0, ay0, ax1, ay1 = _bbox(a)
    bx0, by0, bx1, by1 = _bbox(b)
    return int(ax0 <= bx1 and bx0 <= ax1 and ay0 <= by1 and by0 <= ay1)


def register_spatial_functions(engine):
    @event.listens_for(engine.sync_engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.create_function("ST_Transform", 2, lambda geom, srid: geom)
        dbapi_connection.create_function("ST_AsGeoJSON", 1, lambda geom: geom)
        dbapi_connection.create_function("ST_Intersects", 2, bbox_intersects)


# Indicator columns added on top of the mapped fixed columns
INDICATOR_COLUMNS = (
    [f"tavg_m{n}" for n in range(1, 13)] + ["tavg_avg"]
    + [f"sra_m{n}" for n in range(1, 7)]  # first half-year only
    + ["de_martonne", "pet", "wv_m13"]
)

# Declared types other than REAL
COLUMN_TYPES = {"pet": "DOUBLE PRECISION"}

CLIMATE_ROWS = [
    # areaid 1: municipality name, full 2015 monthly temperature
    dict(
        areaid=1, year=2015, NAZ_OBEC="Alpha", NAZ_KU=None, geom=square(0, 0, 1, 1),
        **{f"tavg_m{n}": v for n, v in enumerate(TAVG_2015_AREA1, start=1)},
        tavg_avg=8.0, sra_m1=40.0, de_martonne=30.0, pet=600.0,
    ),
    dict(
        areaid=1, year=2014, NAZ_OBEC="Alpha", NAZ_KU=None, geom=square(0, 0, 1, 1),
        tavg_m1=INF, tavg_m7=17.0, tavg_avg=7.5, de_martonne=28.0,
    ),
    # areaid 2: cadastral name only, infinite July value
    dict(
        areaid=2, year=2015, NAZ_OBEC=None, NAZ_KU="Beta-KU", geom=square(1, 0, 2, 1),
        tavg_m7=INF, tavg_avg=9.0, de_martonne=None,
    ),
    dict(
        areaid=2, year=2014, NAZ_OBEC=None, NAZ_KU="Beta-KU", geom=square(1, 0, 2, 1),
        tavg_m7=16.0, tavg_avg=8.5,
    ),
    # areaid 3: far away, null July value
    dict(
        areaid=3, year=2015, NAZ_OBEC="Gamma", NAZ_KU="Gamma-KU", geom=square(5, 5, 6, 6),
        tavg_m7=None, tavg_avg=7.0, de_martonne=25.0, pet=-INF,
    ),
]


async def seed_database(engine):
    """Create tables, add indicator columns and load the fixture rows."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
        for name in INDICATOR_COLUMNS:
            column_type = COLUMN_TYPES.get(name, "REAL")
            await conn.execute(
                text(f'ALTER TABLE climate_master_geom ADD COLUMN "{name}" {column_type}')
            )
        await conn.execute(text('ALTER TABLE climate_master_geom ADD COLUMN "remark" TEXT'))

        for row in CLIMATE_ROWS:
            columns = ", ".join(f'"{c}"' for c in row)
            params = ", ".join(f":{c}" for c in row)
            await conn.execute(
                text(f"INSERT INTO climate_master_geom ({columns}) VALUES ({params})"),
                row,
            )

    session_factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        session.add_all([
            ExtendedCompetenceRegion(name="Benešov", geom=square(0, 0, 2, 1)),
            ExtendedCompetenceRegion(name="Prázdná", geom=square(10, 10, 11, 11)),
            ProtectedArea(name="Křivoklátsko", geom=square(5, 5, 6, 6)),
            # Two polygons of one protected area, both covering area 1
            ProtectedArea(name="Dvojitá", geom=square(0, 0, 0.5, 0.5)),
            ProtectedArea(name="Dvojitá", geom=square(0.25, 0.25, 0.75, 0.75)),
            CadastralUnit(name="Beta-KU", geom=square(1, 0, 2, 1)),
            CadastralUnit(name="Alpha-KU", geom=square(0, 0, 1, 1)),
            CadastralUnit(name=None, geom=square(3, 3, 4, 4)),
        ])
        await session.commit()


@pytest.fixture
def engine(tmp_path):
    """Async engine on a temporary SQLite file with spatial functions."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'klima_test.db'}",
        poolclass=NullPool,
    )
    register_spatial_functions(test_engine)
    return test_engine


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(engine, session_factory):
    """Seeded database session for query-level tests."""
    await seed_database(engine)
    async with session_factory() as session:
        yield session


@pytest.fixture
def client(engine, session_factory):
    """Test client backed by the seeded temporary database."""
    asyncio.run(seed_database(engine))

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.metadata_resolver = ClimateMetadataResolver()
    yield TestClient(app)
    app.dependency_overrides.clear()
