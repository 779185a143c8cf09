# services/portfolio/holdings_import.py
"""
Portfolio spreadsheet/CSV import.

Brokers export holdings in every shape imaginable, so column detection is a
heuristic: look for a header row that names both a ticker and a weight
column; if there isn't one, assume (ticker, name, weight) order.
"""
from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

import pandas as pd

from schemas.holding import Holding
from utils.common_helpers import parse_leading_float

logger = logging.getLogger(__name__)

TICKER_RE = re.compile(r"ticker|symbol", re.IGNORECASE)
NAME_RE = re.compile(r"name|company|description", re.IGNORECASE)
WEIGHT_RE = re.compile(r"weight|allocation|%|percent", re.IGNORECASE)
EXTENSION_RE = re.compile(r"\.(csv|xlsx|xls)$", re.IGNORECASE)

NO_HEADER_MESSAGE = (
    "Could not parse file. Expected columns: Ticker/Symbol, Name (optional), Weight/Allocation"
)
NO_VALID_ROWS_MESSAGE = "No valid holdings found in file"
UNREADABLE_MESSAGE = "Failed to parse file. Please check the format."

Rows = List[List[str]]

MAX_TICKER_LEN = 32


class HoldingsImportError(ValueError):
    """Raised with a message that is safe to show to the user as-is."""


@dataclass
class ImportedPortfolio:
    name: str
    holdings: List[Holding]


def portfolio_name_from_filename(filename: str) -> str:
    return EXTENSION_RE.sub("", filename or "")


def _is_csv(filename: str) -> bool:
    return (filename or "").lower().endswith(".csv")


def read_csv_rows(text: str) -> Rows:
    rows: Rows = []
    for record in csv.reader(io.StringIO(text)):
        rows.append([cell.strip().replace('"', "") for cell in record])
    return rows


def _cell_to_str(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if pd.isna(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value)


def read_excel_rows(data: bytes) -> Rows:
    """First worksheet, no header inference, every cell as a string."""
    frame = pd.read_excel(io.BytesIO(data), sheet_name=0, header=None)
    return [[_cell_to_str(v) for v in record] for record in frame.itertuples(index=False, name=None)]


def read_rows(filename: str, data: bytes) -> Rows:
    if _is_csv(filename):
        return read_csv_rows(data.decode("utf-8-sig"))
    return read_excel_rows(data)


def find_header_row(rows: Rows) -> int:
    for i, row in enumerate(rows):
        has_ticker = any(TICKER_RE.search(str(cell)) for cell in row)
        has_weight = any(WEIGHT_RE.search(str(cell)) for cell in row)
        if has_ticker and has_weight:
            return i
    return -1


def _first_match(headers: Sequence[str], pattern: re.Pattern) -> int:
    for i, h in enumerate(headers):
        if pattern.search(h):
            return i
    return -1


def _cell(row: Sequence[str], idx: int) -> str:
    if idx < 0 or idx >= len(row):
        return ""
    return str(row[idx] or "")


def _normalize_weight(raw: str) -> Optional[float]:
    weight = parse_leading_float(raw.replace("%", "").strip())
    if weight is None or weight <= 0:
        return None
    # anything above 1 is a percentage
    return weight / 100 if weight > 1 else weight


def _parse_positional(rows: Rows) -> List[Holding]:
    parsed: List[Holding] = []
    for row in rows[1:]:
        if len(row) < 2:
            continue
        ticker = str(row[0]).strip().upper()
        has_name = len(row) >= 3
        name = str(row[1]).strip() if has_name else ticker
        weight = _normalize_weight(str(row[2] if has_name else row[1]))
        if ticker and len(ticker) <= MAX_TICKER_LEN and weight is not None:
            parsed.append(Holding(ticker=ticker, name=name, weight=weight))
    return parsed


def _parse_with_header(rows: Rows, header_row: int) -> List[Holding]:
    headers = [str(h).lower() for h in rows[header_row]]
    ticker_idx = _first_match(headers, TICKER_RE)
    name_idx = _first_match(headers, NAME_RE)
    weight_idx = _first_match(headers, WEIGHT_RE)

    parsed: List[Holding] = []
    for row in rows[header_row + 1:]:
        ticker = _cell(row, ticker_idx).strip().upper()
        name = _cell(row, name_idx).strip() if name_idx >= 0 else ticker
        weight = _normalize_weight(_cell(row, weight_idx))
        if ticker and len(ticker) <= MAX_TICKER_LEN and weight is not None:
            parsed.append(Holding(ticker=ticker, name=name, weight=weight))
    return parsed


def parse_holdings(rows: Rows) -> List[Holding]:
    """Turn a table of string cells into holdings, or raise HoldingsImportError."""
    header_row = find_header_row(rows)
    if header_row == -1:
        parsed = _parse_positional(rows)
        if not parsed:
            raise HoldingsImportError(NO_HEADER_MESSAGE)
        return parsed

    parsed = _parse_with_header(rows, header_row)
    if not parsed:
        raise HoldingsImportError(NO_VALID_ROWS_MESSAGE)
    return parsed


def import_portfolio_file(filename: str, data: bytes) -> ImportedPortfolio:
    try:
        rows = read_rows(filename, data)
        holdings = parse_holdings(rows)
    except HoldingsImportError:
        raise
    except Exception as e:
        logger.warning("portfolio_import_unreadable ext=%s error=%s", filename.rsplit(".", 1)[-1], type(e).__name__)
        raise HoldingsImportError(UNREADABLE_MESSAGE) from e

    logger.info("portfolio_imported holdings=%d", len(holdings))
    return ImportedPortfolio(name=portfolio_name_from_filename(filename), holdings=holdings)
