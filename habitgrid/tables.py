"""Spreadsheet-style table storage.

The pipeline only needs a handful of grid operations (read a range, write a
range, find a label, append a log row), so storage sits behind ``TableStore``.
Coordinates are 1-based, like spreadsheet rows and columns.

Two backends are provided:
    MemoryWorkbook  – dict of sheets held in memory (tests, scripting)
    ExcelWorkbook   – an .xlsx file read and written with openpyxl
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from openpyxl import Workbook, load_workbook

from habitgrid.exceptions import ConfigurationMissingError

Cell = Any
Anchor = tuple[int, int]


class TableStore(ABC):
    """Minimal grid API shared by all storage backends."""

    # --------------------------------------------------------------
    # Backend primitives
    # --------------------------------------------------------------

    @abstractmethod
    def sheet_names(self) -> list[str]: ...

    @abstractmethod
    def _create_sheet(self, name: str) -> None: ...

    @abstractmethod
    def _get_cell(self, sheet: str, row: int, column: int) -> Cell: ...

    @abstractmethod
    def _set_cell(self, sheet: str, row: int, column: int, value: Cell) -> None: ...

    @abstractmethod
    def last_row(self, sheet: str) -> int:
        """Index of the last row holding any value (0 for an empty sheet)."""

    @abstractmethod
    def last_column(self, sheet: str) -> int:
        """Index of the last column holding any value (0 for an empty sheet)."""

    @abstractmethod
    def clear_sheet(self, sheet: str) -> None: ...

    def flush(self) -> None:
        """Persist pending changes. No-op for in-memory backends."""

    def reload(self) -> None:
        """Re-read the backing file, dropping unflushed changes. No-op for in-memory backends."""

    # --------------------------------------------------------------
    # Grid operations
    # --------------------------------------------------------------

    def has_sheet(self, sheet: str) -> bool:
        return sheet in self.sheet_names()

    def _require(self, sheet: str) -> None:
        if not self.has_sheet(sheet):
            raise ConfigurationMissingError(f"Sheet '{sheet}' not found.", sheet=sheet)

    def read_range(self, sheet: str, row: int, column: int, num_rows: int, num_columns: int) -> list[list[Cell]]:
        self._require(sheet)
        return [
            [self._get_cell(sheet, r, c) for c in range(column, column + num_columns)]
            for r in range(row, row + num_rows)
        ]

    def get_values(self, sheet: str) -> list[list[Cell]]:
        """Return the full populated range, starting at A1."""
        self._require(sheet)
        return self.read_range(sheet, 1, 1, self.last_row(sheet), self.last_column(sheet))

    def write_range(self, sheet: str, row: int, column: int, values: Sequence[Sequence[Cell]]) -> None:
        self._require(sheet)
        if row < 1 or column < 1:
            raise ValueError(f"Coordinates are 1-based, got row={row} column={column}")
        for r_offset, row_values in enumerate(values):
            for c_offset, value in enumerate(row_values):
                self._set_cell(sheet, row + r_offset, column + c_offset, value)

    def find_text(
        self,
        sheet: str,
        text: str,
        row: int,
        column: int,
        num_rows: int,
        num_columns: int = 1,
    ) -> Anchor | None:
        """Find the first cell (row-major) whose trimmed text equals ``text``."""
        self._require(sheet)
        target = text.strip()
        for r in range(row, row + num_rows):
            for c in range(column, column + num_columns):
                value = self._get_cell(sheet, r, c)
                if value is not None and str(value).strip() == target:
                    return r, c
        return None

    def append_row(self, sheet: str, values: Iterable[Cell]) -> None:
        if not self.has_sheet(sheet):
            self._create_sheet(sheet)
        row = self.last_row(sheet) + 1
        for c, value in enumerate(values, start=1):
            self._set_cell(sheet, row, c, value)


class MemoryWorkbook(TableStore):
    """Sheets stored as lists of rows; handy for tests and dry runs."""

    def __init__(self, sheets: dict[str, list[list[Cell]]] | None = None) -> None:
        self._sheets: dict[str, list[list[Cell]]] = {
            name: [list(r) for r in rows] for name, rows in (sheets or {}).items()
        }

    def sheet_names(self) -> list[str]:
        return list(self._sheets)

    def _create_sheet(self, name: str) -> None:
        self._sheets.setdefault(name, [])

    def _get_cell(self, sheet: str, row: int, column: int) -> Cell:
        rows = self._sheets[sheet]
        if row > len(rows):
            return None
        cells = rows[row - 1]
        return cells[column - 1] if column <= len(cells) else None

    def _set_cell(self, sheet: str, row: int, column: int, value: Cell) -> None:
        rows = self._sheets[sheet]
        while len(rows) < row:
            rows.append([])
        cells = rows[row - 1]
        while len(cells) < column:
            cells.append(None)
        cells[column - 1] = value

    def last_row(self, sheet: str) -> int:
        rows = self._sheets[sheet]
        for idx in range(len(rows), 0, -1):
            if any(v not in (None, "") for v in rows[idx - 1]):
                return idx
        return 0

    def last_column(self, sheet: str) -> int:
        width = 0
        for cells in self._sheets[sheet]:
            for idx in range(len(cells), 0, -1):
                if cells[idx - 1] not in (None, ""):
                    width = max(width, idx)
                    break
        return width

    def clear_sheet(self, sheet: str) -> None:
        if sheet in self._sheets:
            self._sheets[sheet] = []

    def snapshot(self, sheet: str) -> list[list[Cell]]:
        """Deep-ish copy of a sheet's rows, for before/after comparisons."""
        return [list(r) for r in self._sheets[sheet]]


class ExcelWorkbook(TableStore):
    """An .xlsx workbook on disk. Changes are written back on ``flush()``.

    The file is opened twice: once with formulas (the copy that gets edited
    and saved) and once with ``data_only=True`` so formula cells such as
    ``=B1+7`` read as the value a spreadsheet app last computed for them.
    openpyxl does not compute formulas itself, so after it saves the file
    those cached values are gone until the file is opened and saved again in
    a spreadsheet app.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.reload()

    def reload(self) -> None:
        if self.path.exists():
            self._wb = load_workbook(self.path)
            self._computed = load_workbook(self.path, data_only=True)
        else:
            self._wb = Workbook()
            # Drop the default "Sheet" so only real sheets are reported
            self._wb.remove(self._wb.active)
            self._computed = None
        self._next_row: dict[str, int] = {}
        self._dirty = False

    def sheet_names(self) -> list[str]:
        return list(self._wb.sheetnames)

    def _create_sheet(self, name: str) -> None:
        self._wb.create_sheet(title=name)
        self._next_row[name] = 1
        self._dirty = True

    def _get_cell(self, sheet: str, row: int, column: int) -> Cell:
        ws = self._wb[sheet]
        if row > ws.max_row or column > ws.max_column:
            return None
        value = ws.cell(row=row, column=column).value
        if isinstance(value, str) and value.startswith("=") and self._has_computed(sheet):
            return self._computed[sheet].cell(row=row, column=column).value
        return value

    def _has_computed(self, sheet: str) -> bool:
        return self._computed is not None and sheet in self._computed.sheetnames

    def _set_cell(self, sheet: str, row: int, column: int, value: Cell) -> None:
        self._wb[sheet].cell(row=row, column=column, value=value)
        if sheet in self._next_row and row >= self._next_row[sheet]:
            self._next_row[sheet] = row + 1
        self._dirty = True

    def append_row(self, sheet: str, values: Iterable[Cell]) -> None:
        # The log sheet only grows, so remember where the next row goes
        if not self.has_sheet(sheet):
            self._create_sheet(sheet)
        if sheet not in self._next_row:
            self._next_row[sheet] = self.last_row(sheet) + 1
        row = self._next_row[sheet]
        for c, value in enumerate(values, start=1):
            self._set_cell(sheet, row, c, value)

    def last_row(self, sheet: str) -> int:
        # max_row also counts styled-but-empty cells, so look at values
        last = 0
        for idx, values in enumerate(self._wb[sheet].iter_rows(values_only=True), start=1):
            if any(v not in (None, "") for v in values):
                last = idx
        return last

    def last_column(self, sheet: str) -> int:
        last = 0
        for values in self._wb[sheet].iter_rows(values_only=True):
            for idx in range(len(values), 0, -1):
                if values[idx - 1] not in (None, ""):
                    last = max(last, idx)
                    break
        return last

    def clear_sheet(self, sheet: str) -> None:
        if not self.has_sheet(sheet):
            return
        ws = self._wb[sheet]
        if ws.max_row:
            ws.delete_rows(1, ws.max_row)
        self._next_row[sheet] = 1
        self._dirty = True

    def flush(self) -> None:
        if not self._dirty:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._wb.save(self.path)
        self._dirty = False
