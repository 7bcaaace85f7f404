"""Human-readable formatting of metric values."""
import math
import re
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import Union

from metricview.series import CanonicalMetric

BYTE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]

FIXED_POINT_CONTEXT = Context(prec=400)

LEADING_NUMBER = re.compile(r'^\s*([+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?))')

SPECIAL_VALUES = {
    "nan": math.nan,
    "+inf": math.inf,
    "inf": math.inf,
    "-inf": -math.inf,
}


def parse_number(raw: Union[str, float, int, None]) -> float:
    """
    Read a float from a sample value string.

    Understands the exposition special values (``NaN``, ``+Inf``, ``-Inf``);
    otherwise reads the leading number like ``parseFloat`` and returns NaN
    when there is none.
    """
    if raw is None:
        return math.nan
    if isinstance(raw, (int, float)):
        return float(raw)

    special = SPECIAL_VALUES.get(raw.strip().lower())
    if special is not None:
        return special

    match = LEADING_NUMBER.match(raw)
    if not match:
        return math.nan
    return float(match.group(1).replace("Infinity", "inf"))


def to_fixed(value: float, digits: int) -> str:
    """Fixed-point rendering with half-up rounding on the exact binary value."""
    quantum = Decimal(1).scaleb(-digits)
    return str(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP, context=FIXED_POINT_CONTEXT))


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _format_non_finite(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    return "+Inf" if value > 0 else "-Inf"


def format_bytes(num_bytes: float) -> str:
    """Scale a byte count through Bytes, KB, MB, GB, TB (base 1024)."""
    if num_bytes == 0:
        return "0 Bytes"
    if not math.isfinite(num_bytes):
        return _format_non_finite(num_bytes)

    scaled = num_bytes
    unit = 0
    while abs(scaled) >= 1024 and unit < len(BYTE_UNITS) - 1:
        scaled /= 1024
        unit += 1

    return f"{to_fixed(scaled, 2)} {BYTE_UNITS[unit]}"


def format_duration(seconds: float) -> str:
    """Render seconds as µs, ms, s or minutes depending on magnitude."""
    if not math.isfinite(seconds):
        return _format_non_finite(seconds)

    if seconds < 0.001:
        return f"{to_fixed(seconds * 1000000, 2)}µs"
    elif seconds < 1:
        return f"{to_fixed(seconds * 1000, 2)}ms"
    elif seconds < 60:
        return f"{to_fixed(seconds, 2)}s"

    minutes = math.floor(seconds / 60)
    remaining = seconds % 60
    return f"{minutes}m {to_fixed(remaining, 0)}s"


def format_number(value: float) -> str:
    """Magnitude-scaled rendering for plain numbers."""
    value = float(value)
    if not math.isfinite(value):
        return _format_non_finite(value)

    if value > 1000000:
        return f"{to_fixed(value / 1000000, 2)}M"
    elif value > 1000:
        return f"{to_fixed(value / 1000, 2)}K"

    if value.is_integer():
        return str(int(value))
    return to_fixed(value, 2)


def format_metric_value(value: float, metric: CanonicalMetric) -> str:
    """Format a value using units inferred from the owning metric's name."""
    name = metric.name

    if "_bytes" in name or "_memory" in name:
        return format_bytes(value)

    if "_seconds" in name or "_duration" in name:
        return format_duration(value)

    return format_number(value)
