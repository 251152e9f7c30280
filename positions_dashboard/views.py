"""Read-only views over a snapshot: search, sort, strategy buckets, bond values."""

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from .formatting import parse_number
from .models import BondPosition, OptionPosition, PortfolioSnapshot, Position, StockGroup

SORT_KEYS = ("Symbol", "Last", "Pos Qty", "%Change", "Avg Price", "Days")
DEFAULT_SORT_KEY = "Symbol"


# ------------------------------------------------------------
# Filtering
# ------------------------------------------------------------
def _contains(haystack: Optional[str], query: str) -> bool:
    return bool(haystack) and query.lower() in haystack.lower()


def matches_query(position: Position, query: str) -> bool:
    """Case-insensitive substring match on the symbol, and on the underlying for options."""
    if not query:
        return True
    if _contains(position.symbol, query):
        return True
    return isinstance(position, OptionPosition) and _contains(position.underlying_symbol, query)


def filter_groups(groups: Mapping[str, StockGroup], query: str) -> List[StockGroup]:
    return [g for sym, g in groups.items() if not query or _contains(sym, query)]


def filter_positions(positions: Iterable[Position], query: str) -> List[Position]:
    return [p for p in positions if matches_query(p, query)]


# ------------------------------------------------------------
# Sorting
# ------------------------------------------------------------
@dataclass(frozen=True)
class SortState:
    key: str = DEFAULT_SORT_KEY
    ascending: bool = True

    def toggle(self, key: str) -> "SortState":
        """Same key flips direction; a new key starts ascending."""
        if key == self.key:
            return SortState(key=key, ascending=not self.ascending)
        return SortState(key=key, ascending=True)


def _field_text(position: Position, key: str) -> str:
    if key == "Symbol":
        return position.symbol
    return position.raw.get(key, "")


def sort_value(text: Optional[str], key: str = "") -> Tuple[int, float, str]:
    """Comparable key: blanks first, then numbers, then text."""
    text = (text or "").strip()
    if not text:
        return (0, 0.0, "")
    if key != "Symbol":
        num = parse_number(text.replace("%", ""))
        if num is not None and not math.isinf(num):
            return (1, num, "")
    return (2, 0.0, text)


def sort_positions(positions: Sequence[Position], state: SortState) -> List[Position]:
    # sorted() keeps ties in input order in both directions
    return sorted(
        positions,
        key=lambda p: sort_value(_field_text(p, state.key), state.key),
        reverse=not state.ascending,
    )


def sort_groups(groups: Sequence[StockGroup], state: SortState) -> List[StockGroup]:
    def key(g: StockGroup):
        if state.key == "Symbol":
            return sort_value(g.symbol, state.key)
        if g.stock is None:
            return sort_value("")
        return sort_value(_field_text(g.stock, state.key), state.key)

    return sorted(groups, key=key, reverse=not state.ascending)


# ------------------------------------------------------------
# Strategy buckets
# ------------------------------------------------------------
@dataclass(frozen=True)
class StrategyLeg:
    option: OptionPosition
    stock_symbol: str


def group_by_strategy(snapshot: PortfolioSnapshot) -> Dict[str, List[StrategyLeg]]:
    buckets: Dict[str, List[StrategyLeg]] = {s: [] for s in snapshot.strategies}
    for opt in snapshot.option_universe():
        if not opt.strategy:
            continue
        group = snapshot.groups.get(opt.underlying_symbol)
        stock_symbol = group.stock.symbol if group and group.stock else opt.underlying_symbol
        buckets.setdefault(opt.strategy, []).append(StrategyLeg(option=opt, stock_symbol=stock_symbol))
    return buckets


def filter_strategy_legs(legs: Iterable[StrategyLeg], query: str) -> List[StrategyLeg]:
    """Keep legs whose display stock symbol or option matches the search."""
    return [leg for leg in legs if matches_query(leg.option, query) or _contains(leg.stock_symbol, query)]


# ------------------------------------------------------------
# Bonds
# ------------------------------------------------------------
@dataclass(frozen=True)
class BondValuation:
    cost_basis: float
    market_value: float

    @property
    def pnl(self) -> float:
        return self.market_value - self.cost_basis


def value_bond(bond: BondPosition, multiplier: float = 10.0) -> BondValuation:
    last = parse_number(bond.last_price) or 0.0
    return BondValuation(
        cost_basis=bond.quantity * bond.avg_price * multiplier,
        market_value=bond.quantity * last * multiplier,
    )


# ------------------------------------------------------------
# Tables
# ------------------------------------------------------------
def positions_frame(positions: Iterable[Position]) -> pd.DataFrame:
    rows = []
    for p in positions:
        row = {
            "Symbol": p.symbol,
            "Type": p.position_type.value,
            "Side": p.sign.value,
            "Qty": p.quantity,
            "Last": p.last_price,
            "%Change": p.percent_change,
            "Avg Price": p.avg_price,
            "Value": p.position_value,
        }
        if isinstance(p, OptionPosition):
            row.update(
                {
                    "Underlying": p.underlying_symbol,
                    "Leg": p.leg_label,
                    "Strike": p.strike_price,
                    "Expiry": p.expiry_date,
                    "Days": p.days_to_expiry,
                    "Strategy": p.strategy,
                }
            )
        rows.append(row)
    return pd.DataFrame(rows)
