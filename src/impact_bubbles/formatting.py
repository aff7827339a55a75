from __future__ import annotations

import math

_SI_PREFIXES = {
    -12: "p",
    -9: "n",
    -6: "µ",
    -3: "m",
    0: "",
    3: "k",
    6: "M",
    9: "G",
    12: "T",
}


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves away from zero for positives (2.5 -> 3), unlike banker's ``round``."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def format_number(value: float) -> str:
    """Thousands-grouped number with at most three decimals."""
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.3f}".rstrip("0").rstrip(".")


def format_usd(value: float) -> str:
    return f"${format_number(round_half_up(value))}"


def format_usd_short(value: float) -> str:
    """Axis label form: $2M, $350K, $900."""
    if value >= 1_000_000:
        return f"${value / 1_000_000:.0f}M"
    if value >= 1_000:
        return f"${value / 1_000:.0f}K"
    return f"${format_number(value)}"


def format_usd_thousands(value: float) -> str:
    return f"${value / 1000:.0f}K"


def format_si(value: float, significant: int = 2) -> str:
    """Format with an SI prefix and ``significant`` digits (12000 -> 12k, 1500 -> 1.5k)."""
    if value == 0 or not math.isfinite(value):
        return f"{0:.{max(significant - 1, 0)}f}"
    exponent = int(math.floor(math.log10(abs(value)) / 3.0) * 3)
    exponent = max(min(exponent, 12), -12)
    scaled = value / (10.0**exponent)
    magnitude = int(math.floor(math.log10(abs(scaled))))
    decimals = max(significant - 1 - magnitude, 0)
    return f"{scaled:.{decimals}f}{_SI_PREFIXES[exponent]}"
