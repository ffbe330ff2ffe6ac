"""
Climate indicator catalogue.

Labels and units for the indicators known to the map client. The catalogue
does not decide which indicators exist: that comes from the stored schema
(see klima.crud.metadata). Indicators found in the schema but missing here
are still served, with the upper-cased key as label and no unit.
"""

from typing import Dict, NamedTuple

# Annual-only index columns stored under their bare key (no _m<n> / _avg suffix)
ANNUAL_INDEX_COLUMNS = ("pet", "de_martonne", "heat_index")


class IndicatorInfo(NamedTuple):
    """Display metadata of one indicator."""

    label: str
    unit: str


INDICATOR_CATALOGUE: Dict[str, IndicatorInfo] = {
    "tavg": IndicatorInfo("Průměrná teplota (TAVG)", "°C"),
    "sra": IndicatorInfo("Srážky (SRA)", "mm"),
    "rh": IndicatorInfo("Relativní vlhkost (RH)", "%"),
    "wv": IndicatorInfo("Rychlost větru (WV)", "m/s"),
    "pet": IndicatorInfo("PET", "mm"),
    "de_martonne": IndicatorInfo("De Martonne", "index"),
    "heat_index": IndicatorInfo("Heat Index", "°C"),
}


def describe_indicator(key: str) -> IndicatorInfo:
    """
    Get label and unit for an indicator key.

    Example:
        >>> describe_indicator("sra").unit
        'mm'
        >>> describe_indicator("snow").label
        'SNOW'
    """
    return INDICATOR_CATALOGUE.get(key, IndicatorInfo(key.upper(), ""))
