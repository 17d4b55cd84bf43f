"""Human-readable rendering of metric values and trigger thresholds."""

from __future__ import annotations

import math
from decimal import Decimal

# Values at or above this magnitude switch to SI notation
SI_THRESHOLD = 1000

SMS_VALUE_PRECISION = 2
EMAIL_VALUE_PRECISION = 10

POSITIVE_INFINITY_TEXT = "+Inf"
NEGATIVE_INFINITY_TEXT = "-Inf"
NAN_TEXT = "NaN"

SI_PREFIXES = {
    3: "k",
    6: "M",
    9: "G",
    12: "T",
    15: "P",
    18: "E",
    21: "Z",
    24: "Y",
}


def format_non_finite(value: float) -> str:
    """Render an infinite or NaN value as ``+Inf``, ``-Inf`` or ``NaN``."""
    if math.isnan(value):
        return NAN_TEXT
    return POSITIVE_INFINITY_TEXT if value > 0 else NEGATIVE_INFINITY_TEXT


def ftoa(value: float, precision: int) -> str:
    """Format a float with at most ``precision`` decimals, trimming trailing zeros."""
    text = f"{value:.{precision}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text == "-0":
        text = "0"
    return text


def compute_si(value: float) -> tuple[float, str]:
    """Split a value into an SI mantissa and its prefix."""
    if value == 0:
        return 0.0, ""
    magnitude = abs(value)
    exponent = math.floor(math.log10(magnitude)) // 3 * 3
    if magnitude / 10**exponent == 1000.0:
        exponent += 3
    # Beyond yotta the mantissa just grows
    exponent = min(exponent, max(SI_PREFIXES))
    mantissa = math.copysign(magnitude / 10**exponent, value)
    return mantissa, SI_PREFIXES.get(exponent, "")


def format_si(value: float, precision: int) -> str:
    """Format a value in SI notation without a unit suffix, e.g. ``1.5 k``."""
    mantissa, prefix = compute_si(value)
    return f"{ftoa(mantissa, precision)} {prefix}"


def format_value(value: float | None, precision: int) -> str:
    """Format a metric value for a notification.

    Missing values are rendered as zero. Magnitudes of 1000 and above use SI
    notation, smaller ones a plain decimal. Infinities and NaN are rendered
    as ``+Inf``, ``-Inf`` and ``NaN``.

    Args:
        value: Metric value, or None when the host did not report one.
        precision: Maximum number of decimals kept.

    Returns:
        The formatted value.
    """
    number = 0.0 if value is None else float(value)
    if not math.isfinite(number):
        return format_non_finite(number)
    if abs(number) >= SI_THRESHOLD:
        return format_si(number, precision)
    return ftoa(number, precision)


def format_threshold(value: float | None) -> str:
    """Format a trigger threshold with full precision in fixed-point notation."""
    if value is None:
        return "0"
    number = float(value)
    if not math.isfinite(number):
        return format_non_finite(number)
    return format(Decimal(repr(number)).normalize(), "f")
