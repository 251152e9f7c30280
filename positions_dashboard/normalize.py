"""Parse the cleaned export into a typed frame, one row per position."""

import csv
import logging
from typing import Dict, List, Optional

import pandas as pd

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ["Symbol", "Last", "Pos Qty", "%Change", "Avg Price", "Days"]
DERIVED_COLUMNS = ("symbol", "is_short", "quantity", "avg_price", "days_value")


def _split_line(line: str) -> List[str]:
    # strict mode rejects an unterminated quote instead of swallowing the next line
    return next(csv.reader([line], strict=True), [])


def _unique_columns(names: List[str]) -> List[str]:
    seen: Dict[str, int] = {}
    out = []
    for name in names:
        if name in seen:
            seen[name] += 1
            out.append(f"{name}.{seen[name]}")
        else:
            seen[name] = 0
            out.append(name)
    return out


def read_export_frame(cleaned: str, issues: Optional[List[str]] = None) -> pd.DataFrame:
    """Header-driven CSV read; every cell stays a string.

    Each data line is tokenized on its own so a malformed line only costs
    that row. Rows with extra cells are cut to the header width, short rows
    are padded, and lines that cannot be tokenized are skipped. All three are
    reported in ``issues``. The frame index is the data row position, so
    skipped rows leave gaps.
    """
    if issues is None:
        issues = []
    lines = [ln for ln in cleaned.split("\n") if ln.strip() != ""]
    if not lines:
        return pd.DataFrame(columns=EXPORT_COLUMNS, dtype=str)

    columns = _unique_columns(_split_line(lines[0]))
    width = len(columns)
    rows: List[List[str]] = []
    positions: List[int] = []
    for pos, line in enumerate(lines[1:]):
        try:
            cells = _split_line(line)
        except csv.Error as exc:
            msg = f"Row {pos + 1}: could not parse line ({exc}); row skipped"
            logger.warning(msg)
            issues.append(msg)
            continue
        if len(cells) > width:
            msg = f"Row {pos + 1} ({cells[0] if cells else ''}): {len(cells)} cells, expected {width}; extra cells dropped"
            logger.warning(msg)
            issues.append(msg)
            cells = cells[:width]
        rows.append(cells + [""] * (width - len(cells)))
        positions.append(pos)

    df = pd.DataFrame(rows, columns=columns, index=positions, dtype=str)
    for col in EXPORT_COLUMNS:
        if col not in df.columns:
            df[col] = ""
    return df.fillna("")


def parse_quantity(series: pd.Series):
    """Split ``Pos Qty`` into (is_short, magnitude). Sign is read before separators are stripped."""
    text = series.astype(str).str.strip()
    is_short = text.str.startswith("-")
    digits = text.str.replace(",", "", regex=False).str.replace(r"^[+-]", "", regex=True)
    qty = pd.to_numeric(digits, errors="coerce")
    qty = qty.where(qty >= 0)
    return is_short, qty


def parse_price(series: pd.Series) -> pd.Series:
    text = series.astype(str).str.strip().str.replace(r"[$,]", "", regex=True)
    return pd.to_numeric(text, errors="coerce")


def parse_days(series: pd.Series) -> pd.Series:
    text = series.astype(str).str.strip().str.replace(",", "", regex=False)
    return pd.to_numeric(text, errors="coerce")


def normalize_rows(cleaned: str, issues: Optional[List[str]] = None) -> pd.DataFrame:
    """Read the cleaned export and add coerced columns.

    Added columns: ``symbol``, ``is_short``, ``quantity``, ``avg_price``,
    ``days_value``. Unparseable numbers fall back to 0 (``days_value`` to NaN)
    and are reported in ``issues``; the row is always kept.
    """
    if issues is None:
        issues = []
    df = read_export_frame(cleaned, issues)
    if df.empty:
        for col in DERIVED_COLUMNS:
            df[col] = pd.Series(dtype=object)
        return df

    df["symbol"] = df["Symbol"].astype(str)
    is_short, qty = parse_quantity(df["Pos Qty"])
    avg = parse_price(df["Avg Price"])

    for idx in df.index[qty.isna().to_numpy()]:
        msg = f"Row {idx + 1} ({df.at[idx, 'symbol']}): could not parse Pos Qty {df.at[idx, 'Pos Qty']!r}; using 0"
        logger.warning(msg)
        issues.append(msg)
    bad_avg = avg.isna() & df["Avg Price"].astype(str).str.strip().ne("")
    for idx in df.index[bad_avg.to_numpy()]:
        msg = f"Row {idx + 1} ({df.at[idx, 'symbol']}): could not parse Avg Price {df.at[idx, 'Avg Price']!r}; using 0"
        logger.warning(msg)
        issues.append(msg)

    df["is_short"] = is_short.astype(bool)
    df["quantity"] = qty.fillna(0.0).astype(float)
    df["avg_price"] = avg.fillna(0.0).astype(float)
    df["days_value"] = parse_days(df["Days"])
    logger.debug("Normalized %d row(s)", len(df))
    return df
