import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .classify import classify_rows
from .errors import SourceReadError, UploadInProgressError
from .linker import link_positions
from .models import PortfolioSnapshot
from .normalize import normalize_rows
from .preprocess import clean_export_text
from .stats import PositionStats, compute_stats

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    snapshot: PortfolioSnapshot
    stats: PositionStats
    issues: Tuple[str, ...] = ()


def build_snapshot(text: str, issues: Optional[List[str]] = None) -> PortfolioSnapshot:
    """raw export text -> linked snapshot. Data defects land in ``issues``, never raise."""
    cleaned = clean_export_text(text, issues)
    rows = normalize_rows(cleaned, issues)
    positions = classify_rows(rows, issues)
    return link_positions(positions, issues)


def run_pipeline(text: str, as_of: Optional[datetime] = None) -> PipelineResult:
    issues: List[str] = []
    snapshot = build_snapshot(text, issues)
    stats = compute_stats(snapshot, as_of)
    logger.info(
        "Parsed %d row(s): %d stock(s), %d option(s), %d bond(s), %d orphaned option(s), %d issue(s)",
        len(snapshot.positions),
        stats.stocks,
        stats.options,
        stats.bonds,
        len(snapshot.orphaned_options),
        len(issues),
    )
    return PipelineResult(snapshot=snapshot, stats=stats, issues=tuple(issues))


def decode_export(data: bytes) -> str:
    # Broker exports are UTF-8, sometimes with a BOM
    return data.decode("utf-8-sig", errors="replace")


class PortfolioSession:
    """Owns the current result for one view. Each load replaces it wholesale.

    Loads are not queued: a load started while another is running raises
    UploadInProgressError and leaves the current result untouched.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._result: Optional[PipelineResult] = None

    @property
    def result(self) -> Optional[PipelineResult]:
        return self._result

    @property
    def snapshot(self) -> Optional[PortfolioSnapshot]:
        return self._result.snapshot if self._result else None

    def load_text(self, text: str, as_of: Optional[datetime] = None) -> PipelineResult:
        if not self._lock.acquire(blocking=False):
            raise UploadInProgressError("A positions export is already being processed")
        try:
            result = run_pipeline(text, as_of)
            self._result = result
            return result
        finally:
            self._lock.release()

    def load_bytes(self, data: bytes, as_of: Optional[datetime] = None) -> PipelineResult:
        return self.load_text(decode_export(data), as_of)

    def load_file(self, path: Union[str, Path], as_of: Optional[datetime] = None) -> PipelineResult:
        p = Path(path).expanduser()
        try:
            data = p.read_bytes()
        except OSError as exc:
            logger.error("Could not read positions export %s: %s", p, exc)
            raise SourceReadError(f"Could not read positions export {p}: {exc}") from exc
        return self.load_bytes(data, as_of)

    def close(self) -> None:
        self._result = None
