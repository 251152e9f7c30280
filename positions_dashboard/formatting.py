import math
from typing import Any, Optional

PLACEHOLDER = "-"


def parse_number(value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip().replace("$", "").replace(",", "")
        if value == "":
            return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(out) else out


def format_currency(value: Any) -> str:
    v = parse_number(value)
    if v is None:
        return PLACEHOLDER
    if v < 0:
        return f"-${abs(v):,.2f}"
    return f"${v:,.2f}"


def format_percentage(value: Any) -> str:
    if isinstance(value, str) and "%" in value:
        return value
    v = parse_number(value)
    if v is None:
        return PLACEHOLDER
    return f"{v:.2f}%"


def is_gain(percent_change: Optional[str]) -> bool:
    """Broker change strings carry an explicit '+' on up days."""
    return bool(percent_change) and "+" in str(percent_change)
