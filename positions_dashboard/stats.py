"""Portfolio-level counts, strategy histogram and expiry buckets."""

from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Dict, Optional

import numpy as np
import pandas as pd

from .models import PortfolioSnapshot

# Upper edges (inclusive) for 0-7, 8-30, 31-90 and 90+ days
EXPIRY_BUCKET_EDGES = [-np.inf, 7, 30, 90, np.inf]
EXPIRY_BUCKET_NAMES = ["next_7_days", "next_8_to_30_days", "next_31_to_90_days", "over_90_days"]


@dataclass(frozen=True)
class ExpiryBuckets:
    next_7_days: int = 0
    next_8_to_30_days: int = 0
    next_31_to_90_days: int = 0
    over_90_days: int = 0

    @property
    def total(self) -> int:
        return self.next_7_days + self.next_8_to_30_days + self.next_31_to_90_days + self.over_90_days


@dataclass(frozen=True)
class PositionStats:
    stocks: int = 0
    options: int = 0
    bonds: int = 0
    strategies: Dict[str, int] = field(default_factory=dict)
    expirations: ExpiryBuckets = field(default_factory=ExpiryBuckets)

    def as_dict(self) -> dict:
        return asdict(self)


def days_until(expiries: pd.Series, now: pd.Timestamp) -> pd.Series:
    """Whole days from ``now`` to each expiry (midnight), rounded up."""
    delta = pd.to_datetime(expiries) - now
    return pd.Series(np.ceil(delta / pd.Timedelta(days=1)), index=expiries.index)


def bucket_expiries(days: pd.Series) -> ExpiryBuckets:
    days = days.dropna()
    if days.empty:
        return ExpiryBuckets()
    binned = pd.cut(days, bins=EXPIRY_BUCKET_EDGES, labels=EXPIRY_BUCKET_NAMES, right=True)
    counts = binned.value_counts()
    return ExpiryBuckets(**{name: int(counts.get(name, 0)) for name in EXPIRY_BUCKET_NAMES})


def compute_stats(snapshot: PortfolioSnapshot, as_of: Optional[datetime] = None) -> PositionStats:
    """Aggregate over the linked snapshot.

    Options are counted over the option universe (grouped legs plus orphans);
    legs whose symbol never decoded are not part of it. Expiries that are not
    real dates still count toward ``options`` but fall outside every bucket.
    """
    now = pd.Timestamp(as_of) if as_of is not None else pd.Timestamp.now()
    if now.tzinfo is not None:
        now = now.tz_localize(None)
    universe = snapshot.option_universe()

    strategy_counts = Counter(opt.strategy for opt in universe if opt.strategy)
    expiries = pd.Series([opt.expiry_date for opt in universe if opt.expiry_date is not None], dtype=object)
    buckets = bucket_expiries(days_until(expiries, now)) if not expiries.empty else ExpiryBuckets()

    return PositionStats(
        stocks=sum(1 for g in snapshot.groups.values() if g.stock is not None),
        options=len(universe),
        bonds=len(snapshot.bonds),
        strategies=dict(strategy_counts),
        expirations=buckets,
    )
