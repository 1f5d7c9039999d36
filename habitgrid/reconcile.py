"""Merge an extraction result into the weekly sheet.

Each week in the weekly sheet is a block: a date cell marks the week, and the
rows below it carry a habit label in column A and one value per day in C–I.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Final

from dateutil.parser import parse as date_parse

from habitgrid.exceptions import ConfigurationMissingError, InvalidWeekDateError
from habitgrid.extraction import ExtractionResult
from habitgrid.tables import TableStore

logger = logging.getLogger(__name__)

DAYS_PER_WEEK: Final = 7
LABEL_COLUMN: Final = 1
FIRST_VALUE_COLUMN: Final = 3  # C

WEEK_DATE_PATTERN: Final = re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$")


@dataclass(frozen=True, slots=True)
class WeekAnchor:
    row: int
    column: int


def parse_week_start(text: str) -> datetime:
    """Parse ``MM/DD/YYYY`` (month first) into a midnight datetime."""
    text = str(text).strip()
    if not WEEK_DATE_PATTERN.match(text):
        raise InvalidWeekDateError(f"week_start_date '{text}' is not in MM/DD/YYYY form", value=text)
    month, day, _year = (int(part) for part in text.split("/"))
    try:
        parsed = date_parse(text, dayfirst=False)
    except (ValueError, OverflowError):
        raise InvalidWeekDateError(f"week_start_date '{text}' is not a valid date", value=text) from None
    # dateutil silently swaps to day-first when the month is out of range
    if (parsed.month, parsed.day) != (month, day):
        raise InvalidWeekDateError(f"week_start_date '{text}' is not a valid date", value=text)
    return datetime(parsed.year, parsed.month, parsed.day)


def _as_day(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return None


def find_first_date_match(store: TableStore, sheet: str, target: date) -> WeekAnchor | None:
    """Scan the populated range row-major for the first cell on ``target``'s day."""
    day = _as_day(target)
    for r, row in enumerate(store.get_values(sheet), start=1):
        for c, value in enumerate(row, start=1):
            if _as_day(value) == day:
                return WeekAnchor(row=r, column=c)
    return None


def fit_week_values(values: list[Any] | None) -> list[Any]:
    """Truncate or pad with None to exactly one value per day."""
    fitted = list(values or [])[:DAYS_PER_WEEK]
    return fitted + [None] * (DAYS_PER_WEEK - len(fitted))


def week_not_found_message(week: str, sheet: str) -> str:
    return f'Error: Could not find week starting {week} in sheet "{sheet}".'


def update_week(store: TableStore, sheet: str, result: ExtractionResult) -> str:
    """Write each habit's values into the matching rows of the target week.

    Returns a status line. A week that is not in the sheet is reported in the
    returned text and nothing is written.
    """
    if not store.has_sheet(sheet):
        raise ConfigurationMissingError(f"Sheet '{sheet}' not found.", sheet=sheet)

    target = parse_week_start(result.week_start_date)
    match = find_first_date_match(store, sheet, target)
    logger.info("reconcile:TARGET DATE: %s", target.isoformat())
    logger.info("reconcile:MATCH: %s", match)

    if match is None:
        return week_not_found_message(result.week_start_date, sheet)

    # Labels are searched from the week's date row down to the end of the sheet
    start_row = match.row
    row_count = store.last_row(sheet) - start_row + 1

    updates = 0
    for entry in result.entries:
        found = store.find_text(sheet, entry.habit, start_row, LABEL_COLUMN, row_count)
        if found is None:
            logger.warning("reconcile:habit '%s' not found below row %d", entry.habit, start_row)
            continue
        row, _col = found
        store.write_range(sheet, row, FIRST_VALUE_COLUMN, [fit_week_values(entry.values)])
        updates += 1

    return f"Success! Updated {updates} habits for week of {result.week_start_date}"
