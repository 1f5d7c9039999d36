"""Tests for extraction.py response sanitizing and result shaping."""

import pytest

from habitgrid.exceptions import (
    ExtractionResponseUnparseableError,
    ReconciliationFieldMissingError,
)
from habitgrid.extraction import (
    ExtractionResult,
    HabitEntry,
    parse_extraction_response,
    strip_code_fences,
)

INNER = '{"week_start_date": "01/05/2026", "data": [{"habit": "Flossing", "values": [1, 0, null]}]}'


class TestParseExtractionResponse:
    """Tests for parse_extraction_response() and strip_code_fences()."""

    @pytest.mark.parametrize("text", [
        INNER,
        f"```json\n{INNER}\n```",
        f"```JSON\n{INNER}\n```",
        f"```\n{INNER}\n```",
        f"  ```json\n{INNER}\n```\n\n",
        f"```json{INNER}```",
    ])
    def test_fence_variants_parse_identically(self, text):
        """Fenced and bare JSON parse to the same value."""
        assert parse_extraction_response(text) == parse_extraction_response(INNER)

    def test_strip_is_idempotent(self):
        """Stripping twice changes nothing."""
        once = strip_code_fences(f"```json\n{INNER}\n```")
        assert strip_code_fences(once) == once == INNER

    def test_leading_fence_only(self):
        """An unclosed opening fence is removed."""
        assert strip_code_fences("```json\n{}") == "{}"

    def test_trailing_fence_only(self):
        """A lone closing fence is removed."""
        assert strip_code_fences("{}\n```") == "{}"

    def test_inner_backticks_untouched(self):
        """Backticks inside the JSON are kept."""
        text = '{"note": "a ``` b"}'
        assert parse_extraction_response(text) == {"note": "a ``` b"}

    def test_not_json_raises(self):
        """Non-JSON text raises with the text attached."""
        with pytest.raises(ExtractionResponseUnparseableError, match="Unparseable extraction output") as exc_info:
            parse_extraction_response("not json at all")
        assert exc_info.value.text == "not json at all"

    def test_prose_around_json_raises(self):
        """Prose before the JSON is not tolerated."""
        with pytest.raises(ExtractionResponseUnparseableError):
            parse_extraction_response(f"Here is the data:\n{INNER}")

    def test_shape_not_validated(self):
        """Parsing accepts any JSON value."""
        assert parse_extraction_response("[1, 2]") == [1, 2]


class TestExtractionResult:
    """Tests for ExtractionResult.from_payload()."""

    def test_builds_entries(self):
        """Entries are built from the data list."""
        result = ExtractionResult.from_payload(parse_extraction_response(INNER))
        assert result.week_start_date == "01/05/2026"
        assert result.entries == [HabitEntry(habit="Flossing", values=[1, 0, None])]

    def test_missing_week_raises(self):
        """A missing week_start_date raises."""
        with pytest.raises(ReconciliationFieldMissingError, match="week_start_date is missing") as exc_info:
            ExtractionResult.from_payload({"data": []})
        assert exc_info.value.field == "week_start_date"

    def test_empty_week_raises(self):
        """An empty week_start_date raises."""
        with pytest.raises(ReconciliationFieldMissingError, match="week_start_date"):
            ExtractionResult.from_payload({"week_start_date": "", "data": []})

    def test_missing_data_raises(self):
        """A missing data list raises with field "data"."""
        with pytest.raises(ReconciliationFieldMissingError) as exc_info:
            ExtractionResult.from_payload({"week_start_date": "01/05/2026"})
        assert exc_info.value.field == "data"

    def test_non_object_raises(self):
        """A top-level non-object raises."""
        with pytest.raises(ReconciliationFieldMissingError, match="must be an object"):
            ExtractionResult.from_payload([1, 2])

    def test_skips_entries_without_habit(self):
        """Items without a habit name are dropped."""
        result = ExtractionResult.from_payload({
            "week_start_date": "01/05/2026",
            "data": [{"values": [1]}, "junk", {"habit": "DCSS", "values": [0]}],
        })
        assert [e.habit for e in result.entries] == ["DCSS"]

    def test_missing_values_become_empty(self):
        """An entry without values gets an empty list."""
        result = ExtractionResult.from_payload({
            "week_start_date": "01/05/2026",
            "data": [{"habit": "DCSS"}],
        })
        assert result.entries[0].values == []
