"""Strip broker preamble/footer noise from a positions export."""

import logging
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)

HEADER_TOKEN = "Symbol,Last,Pos Qty,%Change,Avg Price,Days"


def find_header_line(lines: Sequence[str]) -> Optional[int]:
    for i, line in enumerate(lines):
        if HEADER_TOKEN in line:
            return i
    return None


def clean_export_text(text: str, issues: Optional[List[str]] = None) -> str:
    """Return the header line followed by the non-blank lines after it.

    Everything above the header is broker preamble and is dropped. Without a
    header the result is empty, which parses to zero rows.
    """
    lines = text.splitlines()
    start = find_header_line(lines)
    if start is None:
        msg = f"Header row not found (expected a line containing {HEADER_TOKEN!r}); no positions parsed"
        logger.warning(msg)
        if issues is not None:
            issues.append(msg)
        return ""
    if start:
        logger.debug("Skipped %d preamble line(s) before header", start)
    kept = [lines[start]] + [ln for ln in lines[start + 1 :] if ln.strip() != ""]
    return "\n".join(kept)
