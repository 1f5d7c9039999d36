"""Extraction prompt for the weekly habit grid photo.

The prompt is a pure function of the quoted habit-name list, the quoted
value-kind list and a ``YearRule``. Same inputs, same text.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final


@dataclass(frozen=True, slots=True)
class YearRule:
    """Which calendar year a handwritten ``MM/DD`` week label belongs to.

    Grids only carry month and day. When ``first_week_prior_year`` is set, the
    December days of week 1 belong to ``tracking_year - 1`` (the tracker
    starts in the last days of the previous December); every other week
    belongs to ``tracking_year``. This is a deployment assumption, not a
    general date-inference rule.
    """

    tracking_year: int
    first_week_prior_year: bool = True

    def instruction(self) -> str:
        if self.first_week_prior_year:
            return (
                f'   - Except for the "December" days in week 1 which occur in {self.tracking_year - 1},\n'
                f"     assume the year is {self.tracking_year} for all other weeks."
            )
        return f"   - Assume the year is {self.tracking_year} for all weeks."


JSON_SHAPE: Final = """{
  "week_start_date": "MM/DD/YYYY",
  "data": [
    { "habit": "<numeric habit>", "values": [191.3, null, ...] },
    { "habit": "<boolean habit>", "values": [1, 0, null, ...] }
  ]
}"""

PROMPT_TEMPLATE: Final = """You are processing a handwritten weekly habit tracker grid.

Tasks:
1. Identify the "WEEK" start date (e.g., "12/28").
{year_rule}
2. For each of these habits, extract one value per day from the grid,
   in order: {habit_names}.
   - The corresponding JSON field types are, in order: {value_kinds}.
{output_task}

Rules:
- For boolean habits: use 1 for checked/done, 0 for X/missed.
- For numeric habits: use the actual numeric value (e.g., 191.3, 111).
- Use null if the cell is completely blank or in the future.{extra_rules}"""

FREE_TEXT_TASK: Final = f"""3. Return ONLY a JSON object with this structure:

{JSON_SHAPE}"""

FREE_TEXT_RULES: Final = """
- Do not add explanations or comments.
- Do not wrap the JSON in markdown or code fences."""

STRUCTURED_TASK: Final = (
    "3. Populate the JSON fields defined by the provided schema "
    "(week_start_date and data[].habit / data[].values)."
)


def build_extraction_prompt(
    habit_names: str,
    value_kinds: str,
    *,
    year_rule: YearRule,
    structured: bool = False,
) -> str:
    """Render the instruction text sent alongside the grid image.

    Args:
        habit_names: Quoted, comma-joined habit names in sheet order.
        value_kinds: Quoted, comma-joined value kinds in the same order.
        year_rule: Year disambiguation for ``MM/DD`` week labels.
        structured: Render the variant used with schema-constrained output,
            which drops the inline JSON example and the no-fences rules.
    """
    return PROMPT_TEMPLATE.format(
        year_rule=year_rule.instruction(),
        habit_names=habit_names,
        value_kinds=value_kinds,
        output_task=STRUCTURED_TASK if structured else FREE_TEXT_TASK,
        extra_rules="" if structured else FREE_TEXT_RULES,
    )
