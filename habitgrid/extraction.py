"""Turn the model's text into data.

``parse_extraction_response`` is the only place free text becomes JSON; the
shape is checked later, at the point of use, by ``ExtractionResult``.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Final

from habitgrid.exceptions import (
    ExtractionResponseUnparseableError,
    ReconciliationFieldMissingError,
)

OPENING_FENCE: Final = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
CLOSING_FENCE: Final = re.compile(r"\s*```$")


def strip_code_fences(text: str) -> str:
    """Remove a leading ```json / ``` fence and a trailing ``` fence."""
    cleaned = text.strip()
    cleaned = OPENING_FENCE.sub("", cleaned, count=1)
    cleaned = CLOSING_FENCE.sub("", cleaned, count=1)
    return cleaned.strip()


def parse_extraction_response(text: str) -> Any:
    """Sanitize and parse the model text.

    Raises:
        ExtractionResponseUnparseableError: If the text is not valid JSON.
    """
    cleaned = strip_code_fences(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ExtractionResponseUnparseableError(
            f"Unparseable extraction output ({e.msg} at char {e.pos}): {cleaned[:200]}",
            text=cleaned,
        ) from e


@dataclass(frozen=True, slots=True)
class HabitEntry:
    habit: str
    values: list[Any]


@dataclass(frozen=True, slots=True)
class ExtractionResult:
    week_start_date: str
    entries: list[HabitEntry]

    @classmethod
    def from_payload(cls, data: Any) -> "ExtractionResult":
        """Build from parsed model JSON (``week_start_date`` + ``data``).

        Raises:
            ReconciliationFieldMissingError: If either field is missing.
        """
        if not isinstance(data, dict):
            raise ReconciliationFieldMissingError(
                f"extraction result must be an object, got {type(data).__name__}",
                field="week_start_date",
            )

        week = data.get("week_start_date")
        if not week:
            raise ReconciliationFieldMissingError(
                f"week_start_date is missing. Full data: {json.dumps(data)[:500]}",
                field="week_start_date",
            )

        items = data.get("data")
        if not isinstance(items, list):
            raise ReconciliationFieldMissingError(
                f"data is missing or not a list. Full data: {json.dumps(data)[:500]}",
                field="data",
            )

        entries = []
        for item in items:
            if not isinstance(item, dict) or not item.get("habit"):
                continue
            values = item.get("values")
            entries.append(
                HabitEntry(
                    habit=str(item["habit"]),
                    values=list(values) if isinstance(values, list) else [],
                )
            )
        return cls(week_start_date=str(week).strip(), entries=entries)
