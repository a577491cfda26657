#!/usr/bin/env python3

"""
CSV import/export for calorie entries.

Two input layouts are understood, chosen from the header row:

Standard layout (the app's own export)::

    day,target,exercise,intake,steps
    2024-01-01,2000,200,1800,9500

A fifth column headed ``protein`` is read as protein grams instead of steps.

Spreadsheet layout, detected by a ``No.`` column and a ``Plus/Minus`` column.
Dates carry no year (``5-Jan``); the year starts at ``start_year`` and is
bumped whenever the file moves from December to January. This relies on the
file being in chronological order: an unsorted file gets wrong years.

A line is skipped when its date is blank or unparseable, or when any numeric
field is present but not a finite number. Skipped lines never abort the batch;
an unreadable file imports nothing.
"""

from __future__ import annotations

import csv
import dataclasses
import io
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import pandas as pd

from entries import CalorieEntry, InvalidEntryError, parse_iso_day, parse_number

logger = logging.getLogger(__name__)

STANDARD = "standard"
SPREADSHEET = "spreadsheet"

STANDARD_COLUMNS = ["day", "target", "exercise", "intake", "steps"]

_MONTHS = {
    name: i + 1
    for i, name in enumerate(
        ["jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"]
    )
}


class CsvImportError(ValueError):
    """The file as a whole could not be read; nothing was imported."""


@dataclass
class ImportResult:
    entries: List[Dict[str, Any]]
    skipped: int
    layout: str
    imported_ids: List[str] = field(default_factory=list)


# ---------------------------
# Parsing helpers
# ---------------------------

def decode_upload(data: Union[bytes, str]) -> str:
    if isinstance(data, str):
        return data
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise CsvImportError(f"File is not valid UTF-8 text: {e}") from e


def detect_layout(header: Sequence[str]) -> str:
    tokens = [h.strip().lower() for h in header]
    has_number = any(t in ("no.", "no") for t in tokens)
    has_plus_minus = any("plus" in t and "minus" in t for t in tokens) or "+/-" in tokens
    return SPREADSHEET if has_number and has_plus_minus else STANDARD


def parse_day_month(value: str) -> Optional[Tuple[int, int]]:
    """Parse ``5-Jan`` / ``05 Jan`` / ``5/January`` into (day, month)."""
    raw = value.strip().replace("/", "-").replace(" ", "-")
    parts = [p for p in raw.split("-") if p]
    if len(parts) != 2:
        return None
    day_part, month_part = parts
    if not day_part.isdigit():
        # Accept month-first too ("Jan-5")
        day_part, month_part = month_part, day_part
    if not day_part.isdigit():
        return None
    month = _MONTHS.get(month_part[:3].lower())
    if month is None:
        return None
    return int(day_part), month


def _cell(row: Sequence[str], index: Optional[int]) -> str:
    if index is None or index >= len(row):
        return ""
    return row[index]


def _numbers(row: Sequence[str], columns: Dict[str, Optional[int]]) -> Dict[str, Any]:
    return {name: parse_number(_cell(row, idx), name) for name, idx in columns.items()}


def _find_column(header: Sequence[str], *names: str) -> Optional[int]:
    tokens = [h.strip().lower() for h in header]
    for name in names:
        if name in tokens:
            return tokens.index(name)
    return None


# ---------------------------
# Layout parsers
# ---------------------------

def _parse_standard(header: List[str], rows: List[Tuple[int, List[str]]]) -> Tuple[List[Dict[str, Any]], int]:
    columns: Dict[str, Optional[int]] = {name: i for i, name in enumerate(STANDARD_COLUMNS) if name != "day"}
    # The fifth column holds protein instead of steps in older exports
    if _cell(header, 4).strip().lower() == "protein":
        columns["protein"] = columns.pop("steps")
    entries: List[Dict[str, Any]] = []
    skipped = 0
    for line_no, row in rows:
        day = _cell(row, 0).strip()
        if not day or parse_iso_day(day) is None:
            logger.debug("Skipping line %d: bad date %r", line_no, day)
            skipped += 1
            continue
        try:
            values = _numbers(row, columns)
        except InvalidEntryError as e:
            logger.debug("Skipping line %d: %s", line_no, e)
            skipped += 1
            continue
        entries.append({"day": day, **values})
    return entries, skipped


def _parse_spreadsheet(header: List[str], rows: List[Tuple[int, List[str]]], start_year: int) -> Tuple[List[Dict[str, Any]], int]:
    date_col = _find_column(header, "date", "day")
    if date_col is None:
        raise CsvImportError("Spreadsheet layout needs a 'Date' column")
    columns = {
        "target": _find_column(header, "target", "goal"),
        "exercise": _find_column(header, "exercise", "burned"),
        "intake": _find_column(header, "intake", "eaten", "food"),
        "protein": _find_column(header, "protein"),
    }
    year = start_year
    last_month: Optional[int] = None
    entries: List[Dict[str, Any]] = []
    skipped = 0
    for line_no, row in rows:
        parsed = parse_day_month(_cell(row, date_col))
        if parsed is None:
            skipped += 1
            continue
        day_of_month, month = parsed
        if last_month == 12 and month == 1:
            year += 1
        last_month = month
        try:
            day = date(year, month, day_of_month)
            values = _numbers(row, columns)
        except (ValueError, InvalidEntryError) as e:
            logger.debug("Skipping line %d: %s", line_no, e)
            skipped += 1
            continue
        entries.append({"day": day.isoformat(), **values})
    return entries, skipped


def parse_calorie_csv(content: str, start_year: Optional[int] = None) -> ImportResult:
    """Parse CSV text into calorie entry fields; the header row is required."""
    try:
        rows = list(csv.reader(io.StringIO(content)))
    except csv.Error as e:
        raise CsvImportError(f"Could not parse CSV: {e}") from e
    if not rows:
        return ImportResult([], 0, STANDARD)
    header, body = rows[0], rows[1:]
    # Keep 1-based file line numbers for logging; drop whitespace-only lines
    numbered = [(i + 2, row) for i, row in enumerate(body) if len(row) > 1 or any(cell.strip() for cell in row)]
    layout = detect_layout(header)
    if layout == SPREADSHEET:
        year = start_year if start_year is not None else date.today().year
        entries, skipped = _parse_spreadsheet(header, numbered, year)
    else:
        entries, skipped = _parse_standard(header, numbered)
    return ImportResult(entries, skipped, layout)


def import_calorie_csv(store: Any, data: Union[bytes, str], start_year: Optional[int] = None) -> ImportResult:
    """Parse an uploaded file and add every valid row to ``store`` as one batch."""
    result = parse_calorie_csv(decode_upload(data), start_year=start_year)
    if result.entries:
        ids = store.import_calories(result.entries)
        result = dataclasses.replace(result, imported_ids=ids)
    logger.info(
        "CSV import (%s layout): %d imported, %d skipped", result.layout, len(result.imported_ids), result.skipped
    )
    return result


def export_calorie_csv(calories: Sequence[CalorieEntry]) -> str:
    """Write entries in the standard layout."""
    df = pd.DataFrame(
        [[getattr(e, name) for name in STANDARD_COLUMNS] for e in calories],
        columns=STANDARD_COLUMNS,
        dtype=object,
    )
    return df.to_csv(index=False, lineterminator="\n")
