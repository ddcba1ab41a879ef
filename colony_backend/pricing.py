"""
colony_backend/pricing.py

Plot price derivation: totalPrice = area * pricePerSqFt.

The product is computed in Decimal from the decimal string form of each input
and quantized to paise (0.01), so recomputing from the same inputs always
yields the same stored value regardless of how many times area or rate were
independently updated.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Optional

PRICE_QUANTUM = Decimal("0.01")


def _as_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    if not isinstance(value, (int, float, str, Decimal)):
        return None
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        return None
    return result if result.is_finite() else None


def compute_total_price(area: Any, price_per_sq_ft: Any) -> Optional[float]:
    """Return area * rate rounded to 0.01, or None if either input is not numeric."""
    area_dec = _as_decimal(area)
    rate_dec = _as_decimal(price_per_sq_ft)
    if area_dec is None or rate_dec is None:
        return None
    total = (area_dec * rate_dec).quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)
    return float(total)


def apply_total_price(plot: Dict[str, Any]) -> Dict[str, Any]:
    """
    Overwrite totalPrice on an in-flight plot document.

    Runs immediately before every plot persist. A caller-supplied totalPrice
    is discarded whenever both area and pricePerSqFt are numeric.
    """
    total = compute_total_price(plot.get("area"), plot.get("pricePerSqFt"))
    if total is not None:
        plot["totalPrice"] = total
    return plot
