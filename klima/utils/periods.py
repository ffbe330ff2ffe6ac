"""
Period selectors and the period reduction policy.

A period selects a temporal slice of one year: a single month (``m1`` ..
``m12``) or the annual aggregate (``year``). Seasonal groupings (DJF, MAM,
JJA, SON) and custom season spans have no stored column and no reduction
rule; they are rejected when parsed rather than mapped to a guess.

REDUCTION POLICY (time series -> one value per year):
- Month(n) on a monthly series: the n-th value
- Year on a monthly series: mean of the finite monthly values, None if none
- Year on an annual series: the annual value
- Month(n) on an annual series: rejected
"""

import math
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Union

from klima.core.errors import InvalidRequestError, UnsupportedCombinationError

YEAR_CODE = "year"

SEASONAL_CODES = frozenset({"djf", "mam", "jja", "son"})

MONTH_LABELS = {
    1: "Leden", 2: "Únor", 3: "Březen", 4: "Duben",
    5: "Květen", 6: "Červen", 7: "Červenec", 8: "Srpen",
    9: "Září", 10: "Říjen", 11: "Listopad", 12: "Prosinec",
}
YEAR_LABEL = "Celoroční průměr"

_MONTH_CODE = re.compile(r"^m(\d{1,2})$")

SeriesValue = Union[List[Optional[float]], Optional[float]]


@dataclass(frozen=True)
class Period:
    """
    Temporal selector relative to one year.

    ``month`` is None for the annual period. Month numbers are not range
    checked here so that out-of-range requests reach column resolution and
    fail there with a precise reason.
    """

    month: Optional[int] = None

    @classmethod
    def of_month(cls, month: int) -> "Period":
        return cls(month=month)

    @classmethod
    def annual(cls) -> "Period":
        return cls(month=None)

    @property
    def is_annual(self) -> bool:
        return self.month is None

    @property
    def is_valid_month(self) -> bool:
        return self.month is not None and 1 <= self.month <= 12

    @property
    def code(self) -> str:
        return YEAR_CODE if self.is_annual else f"m{self.month}"

    @property
    def label(self) -> str:
        if self.is_annual:
            return YEAR_LABEL
        return MONTH_LABELS.get(self.month, f"M{self.month}")

    @property
    def sort_key(self) -> int:
        # Months ascending, the annual period always last
        return 13 if self.is_annual else self.month

    def __str__(self) -> str:
        return self.code


def parse_period(code: str) -> Period:
    """
    Parse a period wire code.

    Args:
        code: ``m<n>`` or ``year`` (case-insensitive)

    Returns:
        Period

    Raises:
        InvalidRequestError: for seasonal codes or anything unrecognized

    Example:
        >>> parse_period("m7")
        Period(month=7)
        >>> parse_period("year").is_annual
        True
    """
    normalized = (code or "").strip().lower()
    if normalized == YEAR_CODE:
        return Period.annual()

    match = _MONTH_CODE.match(normalized)
    if match:
        return Period.of_month(int(match.group(1)))

    if normalized in SEASONAL_CODES:
        raise InvalidRequestError(
            f"Seasonal period '{code}' is not supported: no stored column or "
            f"reduction rule exists for it. Use m1..m12 or 'year'."
        )
    raise InvalidRequestError(f"Unknown period '{code}'. Use m1..m12 or 'year'.")


def sort_periods(periods) -> List[Period]:
    """Order periods with months ascending and the annual period last."""
    return sorted(set(periods), key=lambda p: p.sort_key)


def finite_or_none(value) -> Optional[float]:
    """Return value as float when it is a finite number, otherwise None."""
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def finite_mean(values: Sequence[Optional[float]]) -> Optional[float]:
    """Arithmetic mean of the finite values, None when there are none."""
    finite = [v for v in (finite_or_none(x) for x in values) if v is not None]
    if not finite:
        return None
    return sum(finite) / len(finite)


def reduce_value(value: SeriesValue, period: Period, indicator: str = "") -> Optional[float]:
    """
    Reduce one year of a time series to a single value for a period.

    Args:
        value: twelve monthly values, or a single annual value
        period: the selected period
        indicator: indicator key, used in error messages

    Returns:
        The reduced value or None when absent

    Raises:
        UnsupportedCombinationError: month requested on an annual-only series,
            or month outside 1..12
    """
    if isinstance(value, list):
        if period.is_annual:
            return finite_mean(value)
        if not period.is_valid_month:
            raise UnsupportedCombinationError(indicator, period.code, "month must be within 1..12")
        if period.month > len(value):
            return None
        return finite_or_none(value[period.month - 1])

    if not period.is_annual:
        raise UnsupportedCombinationError(
            indicator, period.code, "indicator has annual values only"
        )
    return finite_or_none(value)


def reduce_series(
    series: Dict[int, SeriesValue],
    period: Period,
    indicator: str = "",
) -> Dict[int, Optional[float]]:
    """Apply reduce_value to every year of a time series, keeping year order."""
    return {year: reduce_value(value, period, indicator) for year, value in series.items()}
