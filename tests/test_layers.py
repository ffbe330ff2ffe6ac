"""
Tests for the map layer endpoints and queries.
"""

import pytest
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.schema import CreateTable

from klima.core.errors import InvalidRequestError
from klima.crud.layers import LAYERS, get_layer
from klima.models import ClimateRecord, ProtectedArea


def test_layer_registry():
    assert set(LAYERS) == {"chko", "orp", "ku", "climate"}
    with pytest.raises(InvalidRequestError):
        get_layer("kraje")


@pytest.mark.asyncio
async def test_get_features(db_session):
    features = await get_layer("orp").get_features(db_session)
    assert [f.name for f in features] == ["Benešov", "Prázdná"]
    assert features[0].geometry["type"] == "Polygon"


@pytest.mark.asyncio
async def test_climate_layer_latest_year(db_session):
    """Climate polygons are served for the latest year only."""
    features = await get_layer("climate").get_features(db_session)
    assert len(features) == 3
    assert [f.name for f in features] == ["Alpha", "Beta-KU", "Gamma"]


@pytest.mark.asyncio
async def test_climate_layer_names_fall_back_to_cadastral(db_session):
    """An area without a municipality name is listed by its cadastral name."""
    assert await get_layer("climate").get_names(db_session) == ["Alpha", "Beta-KU", "Gamma"]


def test_climate_record_display_name():
    assert ClimateRecord(municipality_name="Alpha", cadastral_name="Alpha-KU").display_name == "Alpha"
    assert ClimateRecord(cadastral_name="Beta-KU").display_name == "Beta-KU"
    assert ClimateRecord().display_name is None


@pytest.mark.parametrize("dialect", [postgresql.dialect(), sqlite.dialect()])
def test_geometry_column_ddl(dialect):
    """The geometry column is emitted as plain GEOMETRY on every backend."""
    assert ProtectedArea.__table__.c.geom.type.compile(dialect=dialect) == "GEOMETRY"
    assert "geom GEOMETRY" in str(CreateTable(ProtectedArea.__table__).compile(dialect=dialect))


@pytest.mark.asyncio
async def test_get_names(db_session):
    assert await get_layer("chko").get_names(db_session) == ["Dvojitá", "Křivoklátsko"]
    assert await get_layer("ku").get_names(db_session) == ["Alpha-KU", "Beta-KU"]


def test_layer_endpoint(client):
    response = client.get("/api/layers/chko")
    assert response.status_code == 200
    data = response.json()
    assert data["type"] == "FeatureCollection"
    assert len(data["features"]) == 3
    assert data["features"][0]["properties"] == {"nazev": "Křivoklátsko"}
    assert data["features"][0]["geometry"]["coordinates"][0][0] == [5, 5]


def test_layer_names_endpoint(client):
    response = client.get("/api/layers/orp/names")
    assert response.status_code == 200
    assert response.json() == {"layer": "orp", "names": ["Benešov", "Prázdná"]}

    response = client.get("/api/layers/climate/names")
    assert response.json()["names"] == ["Alpha", "Beta-KU", "Gamma"]


def test_invalid_layer(client):
    response = client.get("/api/layers/kraje")
    assert response.status_code == 400
    data = response.json()
    assert "Invalid layer name" in data["detail"]
    assert data["status_code"] == 400

    response = client.get("/api/layers/kraje/names")
    assert response.status_code == 400
