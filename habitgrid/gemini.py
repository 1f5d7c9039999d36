"""Gemini ``generateContent`` client for the grid photo."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import requests

from habitgrid.config import DEFAULT_BASE_URL, DEFAULT_MODEL
from habitgrid.exceptions import ExtractionServiceError, ExtractionServiceMalformedError

logger = logging.getLogger(__name__)

# Shape the model must return in structured-output mode.
HABIT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "habit": {"type": "string"},
        "values": {"type": "array", "items": {"type": ["number", "null"]}},
    },
    "required": ["habit", "values"],
}

HABIT_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "week_start_date": {"type": "string"},
        "data": {"type": "array", "items": HABIT_SCHEMA},
    },
    "required": ["week_start_date", "data"],
}


@dataclass(slots=True)
class GeminiClient:
    """Thin wrapper around the Gemini REST API.

    One request per call; retries and backoff are left to the caller.
    """

    api_key: str
    model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_BASE_URL
    mime_type: str = "image/jpeg"
    timeout: float | None = None
    session: requests.Session = field(default_factory=requests.Session)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def build_payload(self, prompt: str, image_b64: str, *, structured: bool = False) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "contents": [{
                "parts": [
                    {"text": prompt},
                    {"inline_data": {"mime_type": self.mime_type, "data": image_b64}},
                ]
            }]
        }
        if structured:
            payload["generationConfig"] = {
                "responseMimeType": "application/json",
                "responseJsonSchema": HABIT_RESPONSE_SCHEMA,
            }
        return payload

    def generate(self, prompt: str, image_b64: str, *, structured: bool = False) -> str:
        """Send prompt + image and return the first candidate's text.

        Raises:
            ExtractionServiceError: On transport failure or an API error body.
            ExtractionServiceMalformedError: If the response has no candidate text.
        """
        payload = self.build_payload(prompt, image_b64, structured=structured)
        logger.info("extract:POST %s (model=%s, structured=%s)", self.endpoint, self.model, structured)

        try:
            # HTTP error statuses still carry a JSON error body, so don't raise_for_status
            resp = self.session.post(
                self.endpoint,
                params={"key": self.api_key},
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ExtractionServiceError(f"Gemini API request failed: {e}") from e

        try:
            body = resp.json()
        except ValueError:
            raise ExtractionServiceMalformedError(
                f"Gemini API returned non-JSON response (HTTP {resp.status_code})",
                body=resp.text[:500],
            ) from None

        if isinstance(body, dict) and body.get("error"):
            error = body["error"]
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            raise ExtractionServiceError(f"Gemini API Error: {message}", status_code=resp.status_code)

        try:
            text = body["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            raise ExtractionServiceMalformedError(
                "Gemini API response has no candidates[0].content.parts[0].text",
                body=resp.text[:500],
            ) from None

        if not isinstance(text, str):
            raise ExtractionServiceMalformedError(
                f"Gemini API candidate text is {type(text).__name__}, expected str",
                body=resp.text[:500],
            )
        return text
