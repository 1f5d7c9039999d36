"""Diagnostic log rows appended to a sheet of the workbook."""

from __future__ import annotations

import logging
from datetime import datetime

from habitgrid.tables import TableStore

DEFAULT_LOG_SHEET = "Log"


class TableLogHandler(logging.Handler):
    """Append ``[timestamp, message]`` rows to a log sheet.

    The sheet is created on first use. Rows are only persisted when the store
    is flushed, which the request boundary does once per request.
    """

    def __init__(self, store: TableStore, sheet: str = DEFAULT_LOG_SHEET, level: int = logging.INFO) -> None:
        super().__init__(level)
        self.store = store
        self.sheet = sheet

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.store.append_row(
                self.sheet,
                [datetime.fromtimestamp(record.created), self.format(record)],
            )
        except Exception:  # noqa: BLE001 – logging must never break the request
            self.handleError(record)


def clear_log(store: TableStore, sheet: str = DEFAULT_LOG_SHEET) -> None:
    """Remove every row from the log sheet, if it exists."""
    if store.has_sheet(sheet):
        store.clear_sheet(sheet)
        store.flush()
