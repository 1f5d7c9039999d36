"""Load the ordered habit configuration from the habit list sheet.

The sheet layout is one header row followed by one habit per row:

    A: Habit name   B: Display type   C: Value kind   D: Example values

Order matters: it is the order habits are listed in the extraction prompt.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Final

from habitgrid.exceptions import ConfigurationEmptyError, ConfigurationMissingError
from habitgrid.tables import TableStore

logger = logging.getLogger(__name__)

HEADER_ROWS: Final = 1
HABIT_COLUMNS: Final = 4


class ValueKind(Enum):
    NUMBER = "number"
    BOOLEAN_FLAG = "boolean-flag"
    OTHER_STRING = "other-string"

    @classmethod
    def lookup(cls, text: str) -> "ValueKind | None":
        """Return the kind named by ``text``, or None when it is not a known name."""
        return _KIND_ALIASES.get(text.strip().lower())

    @classmethod
    def from_text(cls, text: str) -> "ValueKind":
        return cls.lookup(text) or cls.OTHER_STRING


_KIND_ALIASES: Final = {
    **dict.fromkeys(("number", "numeric", "float", "integer", "int"), ValueKind.NUMBER),
    **dict.fromkeys(("boolean", "bool", "boolean-flag", "flag"), ValueKind.BOOLEAN_FLAG),
    **dict.fromkeys(("string", "text", "other-string"), ValueKind.OTHER_STRING),
}


@dataclass(frozen=True, slots=True)
class HabitDefinition:
    name: str
    kind_text: str
    example: str = ""
    display_type: str = ""

    @property
    def value_kind(self) -> ValueKind:
        return ValueKind.from_text(self.kind_text)


@dataclass(frozen=True, slots=True)
class HabitMetadata:
    """Habit definitions plus the quoted lists interpolated into the prompt."""

    habits: list[HabitDefinition]
    names_string: str
    kinds_string: str

    @property
    def names(self) -> list[str]:
        return [h.name for h in self.habits]


def _cell_text(value: object) -> str:
    return "" if value is None else str(value).strip()


def quote_list(items: list[str]) -> str:
    """Render ``['a', "b's"]`` as ``'a', 'b\\'s'`` for embedding in prompt text."""
    escaped = (item.replace("'", "\\'") for item in items)
    return ", ".join(f"'{item}'" for item in escaped)


def load_habit_metadata(store: TableStore, sheet: str) -> HabitMetadata:
    """Read the habit list sheet.

    Raises:
        ConfigurationMissingError: If the sheet does not exist.
        ConfigurationEmptyError: If it has no data rows, or none with a name.
    """
    if not store.has_sheet(sheet):
        raise ConfigurationMissingError(f"Sheet '{sheet}' not found.", sheet=sheet)

    last_row = store.last_row(sheet)
    if last_row <= HEADER_ROWS:
        raise ConfigurationEmptyError(f"{sheet} sheet has no data.", sheet=sheet)

    rows = store.read_range(sheet, HEADER_ROWS + 1, 1, last_row - HEADER_ROWS, HABIT_COLUMNS)

    habits: list[HabitDefinition] = []
    for name, display_type, kind, example in rows:
        # Rows without a habit name are spacers, not errors
        if not _cell_text(name):
            continue
        habit = HabitDefinition(
            name=_cell_text(name),
            kind_text=_cell_text(kind),
            example=_cell_text(example),
            display_type=_cell_text(display_type),
        )
        if ValueKind.lookup(habit.kind_text) is None:
            logger.warning(
                "habits:'%s' has unknown value kind '%s', it will be read as %s",
                habit.name, habit.kind_text, habit.value_kind.value,
            )
        habits.append(habit)

    if not habits:
        raise ConfigurationEmptyError(f"{sheet} sheet has no named habits.", sheet=sheet)

    logger.info("habits:loaded %d habits from '%s'", len(habits), sheet)
    return HabitMetadata(
        habits=habits,
        names_string=quote_list([h.name for h in habits]),
        kinds_string=quote_list([h.kind_text for h in habits]),
    )
