from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from types import MappingProxyType
from typing import ClassVar, Dict, List, Mapping, Optional, Tuple


# ------------------------------------------------------------
# Enumerations
# ------------------------------------------------------------
class PositionType(str, Enum):
    STOCK = "Stock/ETF"
    OPTION = "Option"
    BOND = "Bond/CD"


class QuantitySign(str, Enum):
    LONG = "Long"
    SHORT = "Short"


class OptionType(str, Enum):
    CALL = "Call"
    PUT = "Put"


def _frozen_mapping(row: Optional[Mapping] = None) -> Mapping:
    return MappingProxyType(dict(row or {}))


# ------------------------------------------------------------
# Positions
# ------------------------------------------------------------
@dataclass(frozen=True)
class OptionContract:
    """Fields decoded from an option symbol such as ``.AAPL250117C150``."""

    underlying: str
    expiry_date: Optional[date]  # None when the YYMMDD digits are not a real calendar day
    option_type: OptionType
    strike: float


@dataclass(frozen=True)
class Position:
    """One row of the export. Subclasses fix ``position_type``."""

    position_type: ClassVar[PositionType]

    symbol: str
    sign: QuantitySign
    quantity: float  # magnitude, always >= 0
    avg_price: float
    last_price: str
    percent_change: str
    days: str
    raw: Mapping[str, str] = field(default_factory=_frozen_mapping, compare=False, repr=False)

    @property
    def is_short(self) -> bool:
        return self.sign is QuantitySign.SHORT

    @property
    def position_value(self) -> float:
        return self.quantity * self.avg_price


@dataclass(frozen=True)
class StockPosition(Position):
    position_type: ClassVar[PositionType] = PositionType.STOCK


@dataclass(frozen=True)
class BondPosition(Position):
    position_type: ClassVar[PositionType] = PositionType.BOND


@dataclass(frozen=True)
class OptionPosition(Position):
    position_type: ClassVar[PositionType] = PositionType.OPTION

    contract: Optional[OptionContract] = None
    days_to_expiry: Optional[int] = None  # the row's own "Days" value, not recomputed
    strategy: Optional[str] = None

    @property
    def underlying_symbol(self) -> Optional[str]:
        return self.contract.underlying if self.contract else None

    @property
    def option_type(self) -> Optional[OptionType]:
        return self.contract.option_type if self.contract else None

    @property
    def strike_price(self) -> Optional[float]:
        return self.contract.strike if self.contract else None

    @property
    def expiry_date(self) -> Optional[date]:
        return self.contract.expiry_date if self.contract else None

    @property
    def leg_label(self) -> str:
        if self.contract is None:
            return self.sign.value
        return f"{self.sign.value} {self.contract.option_type.value}"


# ------------------------------------------------------------
# Linked state
# ------------------------------------------------------------
@dataclass(frozen=True)
class StockGroup:
    symbol: str
    stock: Optional[StockPosition]
    options: Tuple[OptionPosition, ...] = ()


@dataclass(frozen=True)
class PortfolioSnapshot:
    """Everything derived from one export. Replaced wholesale on the next load."""

    positions: Tuple[Position, ...] = ()
    groups: Mapping[str, StockGroup] = field(default_factory=_frozen_mapping)
    orphaned_options: Tuple[OptionPosition, ...] = ()
    bonds: Tuple[BondPosition, ...] = ()
    strategies: Tuple[str, ...] = ()  # unique, first-seen order
    unresolved_options: Tuple[OptionPosition, ...] = ()

    @property
    def stock_symbols(self) -> frozenset:
        return frozenset(p.symbol for p in self.positions if isinstance(p, StockPosition))

    def option_universe(self) -> List[OptionPosition]:
        """Options attached to a group plus orphans; unresolved symbols are not included."""
        universe = [opt for group in self.groups.values() for opt in group.options]
        # Orphans also sit in a stock-less group; keep each leg once
        seen = {id(opt) for opt in universe}
        universe.extend(opt for opt in self.orphaned_options if id(opt) not in seen)
        return universe

    def by_type(self) -> Dict[PositionType, List[Position]]:
        out: Dict[PositionType, List[Position]] = {t: [] for t in PositionType}
        for p in self.positions:
            out[p.position_type].append(p)
        return out
