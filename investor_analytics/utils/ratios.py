from __future__ import annotations

import math


def as_number(value, default: float = 0.0) -> float:
    if value is None:
        return default
    try:
        out = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(out) or math.isinf(out):
        return default
    return out


def safe_div(numerator: float, denominator: float) -> float:
    if not denominator:
        return 0.0
    out = numerator / denominator
    if math.isnan(out) or math.isinf(out):
        return 0.0
    return out


def derive_ratios(commitment: float, paid_in: float, nav: float, distributions: float) -> dict[str, float]:
    """Multiples for one entity or one rollup group.

    Always called on summed amounts, so group ratios are aggregate-then-divide.
    """
    total_value = nav + distributions
    return {
        "total_value": total_value,
        "unfunded": max(commitment - paid_in, 0.0),
        "tvpi": safe_div(total_value, paid_in) if paid_in > 0 else 0.0,
        "dpi": safe_div(distributions, paid_in) if paid_in > 0 else 0.0,
        "rvpi": safe_div(nav, paid_in) if paid_in > 0 else 0.0,
        "pic": safe_div(paid_in, commitment) if commitment > 0 else 0.0,
    }
