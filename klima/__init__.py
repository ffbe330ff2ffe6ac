"""Klima map API: PostGIS climate layers served as GeoJSON."""

__version__ = "1.0.0"
