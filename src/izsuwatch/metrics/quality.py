"""Water-quality threshold classification.

Thresholds follow the drinking water limits the authority publishes next to
its analyses. Parameter names appear with and without Turkish characters and
as chemical symbols, so the table carries every spelling seen upstream.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from izsuwatch.models import AnalysisReport
from izsuwatch.utils.text import name_key


class QualityStatus(str, Enum):
    GOOD = "good"
    WARNING = "warning"
    DANGER = "danger"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class QualityLimit:
    """Allowed range for a parameter; either bound may be absent."""

    min: Optional[float] = None
    max: Optional[float] = None


_CHLORINE = QualityLimit(min=0.2, max=0.5)
_PH = QualityLimit(min=6.5, max=9.5)
_ZERO = QualityLimit(max=0)

QUALITY_LIMITS: dict[str, QualityLimit] = {
    "pH": _PH,
    "PH": _PH,
    "Bulaniklik": QualityLimit(max=1),
    "Bulanıklık": QualityLimit(max=1),
    "Turbidite": QualityLimit(max=1),
    "Serbest Klor": _CHLORINE,
    "Serbest Residuel Klor": _CHLORINE,
    "Klor": _CHLORINE,
    "Residuel Klor": _CHLORINE,
    "Iletkenlik": QualityLimit(max=2500),
    "Elektriksel Iletkenlik": QualityLimit(max=2500),
    "Nitrat": QualityLimit(max=50),
    "NO3": QualityLimit(max=50),
    "Nitrit": QualityLimit(max=0.5),
    "NO2": QualityLimit(max=0.5),
    "Amonyum": QualityLimit(max=0.5),
    "NH4": QualityLimit(max=0.5),
    "Demir": QualityLimit(max=0.2),
    "Fe": QualityLimit(max=0.2),
    "Mangan": QualityLimit(max=0.05),
    "Mn": QualityLimit(max=0.05),
    "Aluminyum": QualityLimit(max=0.2),
    "Al": QualityLimit(max=0.2),
    "Florur": QualityLimit(max=1.5),
    "F": QualityLimit(max=1.5),
    "Sulfat": QualityLimit(max=250),
    "SO4": QualityLimit(max=250),
    "Klorur": QualityLimit(max=250),
    "Cl": QualityLimit(max=250),
    "Renk": QualityLimit(max=20),
    "Toplam Sertlik": QualityLimit(max=500),
    "Sertlik": QualityLimit(max=500),
    "E.Coli": _ZERO,
    "E. Coli": _ZERO,
    "Escherichia Coli": _ZERO,
    "Koliform": _ZERO,
    "Toplam Koliform": _ZERO,
    "Koliform Bakteri": _ZERO,
}


def find_limit(
    parameter: str, limits: Optional[dict[str, QualityLimit]] = None
) -> Optional[QualityLimit]:
    """Look up a rule by exact name, then case and accent insensitively."""
    limits = QUALITY_LIMITS if limits is None else limits
    if parameter in limits:
        return limits[parameter]
    wanted = name_key(parameter)
    for name, limit in limits.items():
        if name_key(name) == wanted:
            return limit
    return None


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip().replace(",", "."))
    except ValueError:
        return None
    return None if number != number else number


def _below(number: float, bound: float) -> bool:
    return number < bound and not math.isclose(number, bound, rel_tol=1e-9, abs_tol=1e-12)


def _above(number: float, bound: float) -> bool:
    return number > bound and not math.isclose(number, bound, rel_tol=1e-9, abs_tol=1e-12)


def classify_value(value: Any, limit: Optional[QualityLimit]) -> QualityStatus:
    """Classify a measurement against its limit.

    With both bounds, values outside the range are danger and values below
    ``min * 1.1`` or above ``max * 0.9`` are warning. With only a max, above
    max is danger and above ``0.8 * max`` is warning. With only a min, below
    min is danger and below ``1.2 * min`` is warning. A value equal to a bound
    (within float tolerance) counts as inside it.

    Args:
        value: Measured value (number or numeric string)
        limit: Rule for the parameter, None if there is none

    Returns:
        UNKNOWN when there is no rule or the value is not numeric

    Example:
        >>> classify_value(0.55, QualityLimit(min=0.2, max=0.5))
        <QualityStatus.DANGER: 'danger'>
    """
    if limit is None or (limit.min is None and limit.max is None):
        return QualityStatus.UNKNOWN
    number = _as_float(value)
    if number is None:
        return QualityStatus.UNKNOWN

    if limit.min is not None and limit.max is not None:
        if _below(number, limit.min) or _above(number, limit.max):
            return QualityStatus.DANGER
        if _below(number, limit.min * 1.1) or _above(number, limit.max * 0.9):
            return QualityStatus.WARNING
        return QualityStatus.GOOD

    if limit.max is not None:
        if _above(number, limit.max):
            return QualityStatus.DANGER
        if _above(number, limit.max * 0.8):
            return QualityStatus.WARNING
        return QualityStatus.GOOD

    if _below(number, limit.min):
        return QualityStatus.DANGER
    if _below(number, limit.min * 1.2):
        return QualityStatus.WARNING
    return QualityStatus.GOOD


def classify_parameter(
    parameter: str, value: Any, limits: Optional[dict[str, QualityLimit]] = None
) -> QualityStatus:
    return classify_value(value, find_limit(parameter, limits))


def classify_report(
    report: AnalysisReport, limits: Optional[dict[str, QualityLimit]] = None
) -> dict[str, QualityStatus]:
    """Status of every measured parameter in a report."""
    return {
        m.parameter: classify_parameter(m.parameter, m.value, limits)
        for m in report.measurements
    }


def worst_status(statuses: dict[str, QualityStatus]) -> QualityStatus:
    """Most severe status in a report; UNKNOWN when nothing was classifiable."""
    for status in (QualityStatus.DANGER, QualityStatus.WARNING, QualityStatus.GOOD):
        if status in statuses.values():
            return status
    return QualityStatus.UNKNOWN
