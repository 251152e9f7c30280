"""Attach option legs to the stock position of their underlying."""

import logging
from collections import defaultdict
from types import MappingProxyType
from typing import Dict, List, Optional, Sequence, Tuple

from .models import (
    BondPosition,
    OptionPosition,
    PortfolioSnapshot,
    Position,
    StockGroup,
    StockPosition,
)

logger = logging.getLogger(__name__)


def link_positions(positions: Sequence[Position], issues: Optional[List[str]] = None) -> PortfolioSnapshot:
    """Group options under their underlying and find orphans.

    Stocks are registered first (a repeated symbol replaces the earlier row),
    then resolved options are appended to their group in input order, creating
    a stock-less group when needed. An option is orphaned when no stock row in
    this batch carries its underlying symbol.
    """
    stocks: Dict[str, StockPosition] = {}
    legs: Dict[str, List[OptionPosition]] = defaultdict(list)
    order: List[str] = []

    for p in positions:
        if not isinstance(p, StockPosition):
            continue
        if p.symbol in stocks:
            msg = f"Duplicate stock row for {p.symbol}; keeping the later row"
            logger.warning(msg)
            if issues is not None:
                issues.append(msg)
        else:
            order.append(p.symbol)
        stocks[p.symbol] = p

    unresolved: List[OptionPosition] = []
    for p in positions:
        if not isinstance(p, OptionPosition):
            continue
        if p.underlying_symbol is None:
            unresolved.append(p)
            continue
        if p.underlying_symbol not in stocks and p.underlying_symbol not in legs:
            order.append(p.underlying_symbol)
        legs[p.underlying_symbol].append(p)

    groups = {
        sym: StockGroup(symbol=sym, stock=stocks.get(sym), options=tuple(legs.get(sym, ())))
        for sym in order
    }

    stock_symbols = set(stocks)
    orphaned: Tuple[OptionPosition, ...] = tuple(
        p for p in positions
        if isinstance(p, OptionPosition) and p.underlying_symbol and p.underlying_symbol not in stock_symbols
    )
    bonds = tuple(p for p in positions if isinstance(p, BondPosition))
    strategies = tuple(dict.fromkeys(p.strategy for p in positions if isinstance(p, OptionPosition) and p.strategy))

    logger.debug(
        "Linked %d group(s), %d orphaned option(s), %d unresolved option symbol(s)",
        len(groups),
        len(orphaned),
        len(unresolved),
    )
    return PortfolioSnapshot(
        positions=tuple(positions),
        groups=MappingProxyType(groups),
        orphaned_options=orphaned,
        bonds=bonds,
        strategies=strategies,
        unresolved_options=tuple(unresolved),
    )
