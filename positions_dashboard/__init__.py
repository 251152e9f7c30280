"""Parse a brokerage positions export into linked stock/option/bond positions."""

from .errors import PositionsError, SourceReadError, UploadInProgressError
from .models import (
    BondPosition,
    OptionContract,
    OptionPosition,
    OptionType,
    PortfolioSnapshot,
    Position,
    PositionType,
    QuantitySign,
    StockGroup,
    StockPosition,
)
from .pipeline import PipelineResult, PortfolioSession, build_snapshot, run_pipeline
from .stats import ExpiryBuckets, PositionStats, compute_stats

__all__ = [
    "BondPosition",
    "ExpiryBuckets",
    "OptionContract",
    "OptionPosition",
    "OptionType",
    "PipelineResult",
    "PortfolioSession",
    "PortfolioSnapshot",
    "Position",
    "PositionStats",
    "PositionType",
    "PositionsError",
    "QuantitySign",
    "SourceReadError",
    "StockGroup",
    "StockPosition",
    "UploadInProgressError",
    "build_snapshot",
    "compute_stats",
    "run_pipeline",
]
