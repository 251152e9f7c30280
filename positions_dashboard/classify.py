"""Decide the instrument type of each row and decode option symbols."""

import logging
import math
import re
from datetime import date
from typing import Any, List, Mapping, Optional

import pandas as pd

from .models import (
    BondPosition,
    OptionContract,
    OptionPosition,
    OptionType,
    Position,
    PositionType,
    QuantitySign,
    StockPosition,
)
from .normalize import DERIVED_COLUMNS
from .strategy import tag_strategy

logger = logging.getLogger(__name__)

# .<UNDERLYING><YYMMDD><C|P><STRIKE>, e.g. .AAPL250117C150 or .SPY250321P512.5
OPTION_SYMBOL = re.compile(
    r"\.(?P<underlying>[A-Z]+)"
    r"(?P<yy>\d{2})(?P<mm>\d{2})(?P<dd>\d{2})"
    r"(?P<side>[CP])"
    r"(?P<strike>\d+(?:\.\d+)?)"
)

OPTION_PREFIX = "."
BOND_MIN_LENGTH = 6


def classify_symbol(symbol: str) -> PositionType:
    """First match wins: leading dot -> option, long symbol with digits -> bond, else stock."""
    if symbol.startswith(OPTION_PREFIX):
        return PositionType.OPTION
    if len(symbol) >= BOND_MIN_LENGTH and any(ch.isdigit() for ch in symbol):
        return PositionType.BOND
    return PositionType.STOCK


def expiry_from_digits(yy: str, mm: str, dd: str) -> Optional[date]:
    # Two-digit years always land in the 2000s
    try:
        return date(2000 + int(yy), int(mm), int(dd))
    except ValueError:
        return None


def parse_option_symbol(symbol: str) -> Optional[OptionContract]:
    """Decode an option symbol. Returns None when the symbol does not fit the grammar."""
    m = OPTION_SYMBOL.match(symbol)
    if m is None:
        return None
    return OptionContract(
        underlying=m.group("underlying"),
        expiry_date=expiry_from_digits(m.group("yy"), m.group("mm"), m.group("dd")),
        option_type=OptionType.CALL if m.group("side") == "C" else OptionType.PUT,
        strike=float(m.group("strike")),
    )


def _days_or_none(value: Any) -> Optional[int]:
    if value is None or pd.isna(value) or math.isinf(value):
        return None
    return int(value)


def build_position(record: Mapping[str, Any], issues: Optional[List[str]] = None) -> Position:
    """Turn one normalized record into a Stock, Option or Bond position."""
    symbol = str(record.get("symbol", ""))
    sign = QuantitySign.SHORT if record.get("is_short") else QuantitySign.LONG
    base = dict(
        symbol=symbol,
        sign=sign,
        quantity=float(record.get("quantity", 0.0) or 0.0),
        avg_price=float(record.get("avg_price", 0.0) or 0.0),
        last_price=str(record.get("Last", "")),
        percent_change=str(record.get("%Change", "")),
        days=str(record.get("Days", "")),
        raw={k: str(v) for k, v in record.items() if k not in DERIVED_COLUMNS},
    )

    kind = classify_symbol(symbol)
    if kind is PositionType.STOCK:
        return StockPosition(**base)
    if kind is PositionType.BOND:
        return BondPosition(**base)

    contract = parse_option_symbol(symbol)
    if contract is None:
        msg = f"Option symbol {symbol!r} does not match the expected format; left out of grouping and stats"
        logger.warning(msg)
        if issues is not None:
            issues.append(msg)
        return OptionPosition(**base)
    if contract.expiry_date is None:
        msg = f"Option symbol {symbol!r} has an invalid expiry date; left out of expiry buckets"
        logger.warning(msg)
        if issues is not None:
            issues.append(msg)
    return OptionPosition(
        **base,
        contract=contract,
        days_to_expiry=_days_or_none(record.get("days_value")),
        strategy=tag_strategy(sign, contract.option_type),
    )


def classify_rows(df: pd.DataFrame, issues: Optional[List[str]] = None) -> List[Position]:
    positions = [build_position(rec, issues) for rec in df.to_dict(orient="records")]
    logger.debug("Classified %d position(s)", len(positions))
    return positions
