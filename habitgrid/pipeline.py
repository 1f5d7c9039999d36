"""Request-scoped pipeline: image payload in, status line out.

    body → normalize image → load habits → render prompt → Gemini
         → sanitize/parse → locate week → write habit rows → status

Every failure is caught in ``handle_post`` and turned into ``Error: ...`` so
the HTTP layer always has a plain-text body to return.
"""

from __future__ import annotations

import base64
import json
import logging
from pathlib import Path
from typing import Any

from habitgrid.config import Config
from habitgrid.exceptions import InvalidPayloadError
from habitgrid.extraction import ExtractionResult, parse_extraction_response
from habitgrid.gemini import GeminiClient
from habitgrid.habits import load_habit_metadata
from habitgrid.payload import normalize_image_payload
from habitgrid.prompts import YearRule, build_extraction_prompt
from habitgrid.reconcile import update_week
from habitgrid.tablelog import TableLogHandler
from habitgrid.tables import ExcelWorkbook, TableStore

GET_MESSAGE = 'GET request received. Use POST with JSON body containing "image" field.'


class HabitGridProcessor:
    """Runs one grid photo through extraction and into the weekly sheet."""

    def __init__(
        self,
        store: TableStore,
        client: GeminiClient,
        *,
        year_rule: YearRule,
        habits_sheet: str = "Habit List",
        weekly_sheet: str = "Weekly View",
        structured_output: bool = False,
    ) -> None:
        self.store = store
        self.client = client
        self.year_rule = year_rule
        self.habits_sheet = habits_sheet
        self.weekly_sheet = weekly_sheet
        self.structured_output = structured_output
        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config: Config, store: TableStore | None = None) -> "HabitGridProcessor":
        """Wire the workbook, Gemini client and sheet log handler from config."""
        store = store if store is not None else ExcelWorkbook(config.workbook_path)
        client = GeminiClient(
            api_key=config.gemini_api_key,
            model=config.model_id,
            base_url=config.base_url,
            mime_type=config.image_mime_type,
            timeout=config.request_timeout,
        )

        if config.log_to_sheet:
            pkg_logger = logging.getLogger("habitgrid")
            # Replace a handler left by an earlier processor in the same process
            pkg_logger.handlers = [h for h in pkg_logger.handlers if not isinstance(h, TableLogHandler)]
            pkg_logger.addHandler(TableLogHandler(store, config.log_sheet))

        return cls(
            store,
            client,
            year_rule=config.year_rule,
            habits_sheet=config.habits_sheet,
            weekly_sheet=config.weekly_sheet,
            structured_output=config.structured_output,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def handle_get(self) -> str:
        return GET_MESSAGE

    def handle_post(self, raw_body: bytes | str | None) -> str:
        """Process a raw JSON request body and return the response text."""
        stage = "load"
        loaded = False
        try:
            # Pick up edits made to the workbook since the last request
            self.store.reload()
            loaded = True
            self.logger.info("post:start")

            stage = "payload"
            body = self._decode_body(raw_body)
            image_b64 = normalize_image_payload(body)

            stage = "habits"
            metadata = load_habit_metadata(self.store, self.habits_sheet)

            stage = "extract"
            prompt = build_extraction_prompt(
                metadata.names_string,
                metadata.kinds_string,
                year_rule=self.year_rule,
                structured=self.structured_output,
            )
            text = self.client.generate(prompt, image_b64, structured=self.structured_output)

            stage = "sanitize"
            parsed = parse_extraction_response(text)
            # Kept in the log for manual review of model output
            self.logger.info("sanitize:analysis JSON: %s", json.dumps(parsed, indent=2))

            stage = "reconcile"
            result = ExtractionResult.from_payload(parsed)
            self.logger.info("reconcile:week_start_date: %s", result.week_start_date)
            status = update_week(self.store, self.weekly_sheet, result)
            self.logger.info("reconcile:result: %s", status)
            return status
        except Exception as e:  # noqa: BLE001 – request boundary, all failures become text
            self.logger.error("%s:ERROR: %s: %s", stage, type(e).__name__, e)
            return f"Error: {e}"
        finally:
            # A workbook that failed to load must not be saved over
            if loaded:
                self.store.flush()

    def ingest_file(self, path: Path) -> str:
        """Run a local image file through the pipeline, as if it were POSTed."""
        image_b64 = base64.b64encode(Path(path).read_bytes()).decode("ascii")
        return self.handle_post(json.dumps({"image": image_b64}))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _decode_body(self, raw_body: bytes | str | None) -> Any:
        if not raw_body:
            raise InvalidPayloadError("No data received")
        try:
            return json.loads(raw_body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise InvalidPayloadError(f"Request body is not valid JSON: {e}") from e
