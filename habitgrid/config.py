"""Configuration management for habitgrid.

Centralizes environment variable loading and validation, with an optional
profile file (YAML or JSON) for per-deployment overrides.
"""

import json
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import yaml

from habitgrid.exceptions import ConfigurationError
from habitgrid.prompts import YearRule


# Keep in sync with pyproject.toml
APP_VERSION = "0.22.0"

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_bool(name: str, raw: object) -> bool:
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")


def _parse_int(name: str, raw: object) -> int:
    try:
        return int(str(raw).strip())
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


def _parse_float(name: str, raw: object) -> float:
    try:
        return float(str(raw).strip())
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None


@dataclass
class ProfileConfig:
    """Deployment profile loaded from a YAML or JSON file.

    Every field is optional; unset fields fall back to environment variables
    and then to defaults.
    """

    name: str
    workbook_path: Path | None = None
    habits_sheet: str | None = None
    weekly_sheet: str | None = None
    log_sheet: str | None = None
    model_id: str | None = None
    tracking_year: int | None = None
    first_week_prior_year: bool | None = None
    structured_output: bool | None = None

    @classmethod
    def from_file(cls, profile_path: Path) -> "ProfileConfig":
        """Load profile from YAML or JSON file."""
        if not profile_path.exists():
            raise ConfigurationError(f"Profile not found: {profile_path}")

        content = profile_path.read_text(encoding="utf-8")

        if profile_path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content) or {}
        else:
            data = json.loads(content)

        if not isinstance(data, dict):
            raise ConfigurationError(f"Profile {profile_path} must contain a mapping")

        workbook = data.get("workbook_path")
        year = data.get("tracking_year")
        prior = data.get("first_week_prior_year")
        structured = data.get("structured_output")

        return cls(
            name=data.get("name", profile_path.stem),
            workbook_path=Path(workbook) if workbook else None,
            habits_sheet=data.get("habits_sheet"),
            weekly_sheet=data.get("weekly_sheet"),
            log_sheet=data.get("log_sheet"),
            model_id=data.get("model_id"),
            tracking_year=_parse_int("tracking_year", year) if year is not None else None,
            first_week_prior_year=(
                _parse_bool("first_week_prior_year", prior) if prior is not None else None
            ),
            structured_output=(
                _parse_bool("structured_output", structured) if structured is not None else None
            ),
        )


@dataclass
class Config:
    """Configuration for the habit grid pipeline.

    Values come from environment variables (a local ``.env`` is loaded by the
    CLI), optionally overridden by a profile. The API key is required.
    """

    # API Configuration
    gemini_api_key: str
    model_id: str
    base_url: str
    request_timeout: float | None
    image_mime_type: str

    # Workbook Configuration
    workbook_path: Path
    habits_sheet: str
    weekly_sheet: str
    log_sheet: str
    log_to_sheet: bool

    # Extraction Configuration
    tracking_year: int
    first_week_prior_year: bool
    structured_output: bool

    @property
    def year_rule(self) -> YearRule:
        return YearRule(
            tracking_year=self.tracking_year,
            first_week_prior_year=self.first_week_prior_year,
        )

    @classmethod
    def from_env(cls, profile: ProfileConfig | None = None) -> "Config":
        """Load and validate configuration.

        Args:
            profile: Optional profile whose fields take priority over the
                environment. When omitted, ``HABITGRID_PROFILE`` is consulted.

        Returns:
            Config: Validated configuration object.

        Raises:
            ConfigurationError: If GEMINI_API_KEY is missing or a value is invalid.
        """
        gemini_api_key = os.getenv("GEMINI_API_KEY")
        if not gemini_api_key:
            raise ConfigurationError("GEMINI_API_KEY environment variable is required")

        if profile is None and os.getenv("HABITGRID_PROFILE"):
            profile = ProfileConfig.from_file(Path(os.environ["HABITGRID_PROFILE"]))
        if profile is None:
            profile = ProfileConfig(name="default")

        timeout_raw = os.getenv("GEMINI_TIMEOUT")
        request_timeout = _parse_float("GEMINI_TIMEOUT", timeout_raw) if timeout_raw else None

        # Priority: profile > env > default
        workbook_path = profile.workbook_path or Path(os.getenv("WORKBOOK_PATH", "habits.xlsx"))

        if profile.tracking_year is not None:
            tracking_year = profile.tracking_year
        else:
            tracking_year = _parse_int(
                "TRACKING_YEAR", os.getenv("TRACKING_YEAR", str(datetime.now().year))
            )

        if profile.first_week_prior_year is not None:
            first_week_prior_year = profile.first_week_prior_year
        else:
            first_week_prior_year = _parse_bool(
                "FIRST_WEEK_PRIOR_YEAR", os.getenv("FIRST_WEEK_PRIOR_YEAR", "true")
            )

        if profile.structured_output is not None:
            structured_output = profile.structured_output
        else:
            structured_output = _parse_bool(
                "STRUCTURED_OUTPUT", os.getenv("STRUCTURED_OUTPUT", "false")
            )

        return cls(
            gemini_api_key=gemini_api_key,
            model_id=profile.model_id or os.getenv("GEMINI_MODEL", DEFAULT_MODEL),
            base_url=os.getenv("GEMINI_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
            request_timeout=request_timeout,
            image_mime_type=os.getenv("IMAGE_MIME_TYPE", "image/jpeg"),
            workbook_path=workbook_path,
            habits_sheet=profile.habits_sheet or os.getenv("HABITS_SHEET", "Habit List"),
            weekly_sheet=profile.weekly_sheet or os.getenv("WEEKLY_SHEET", "Weekly View"),
            log_sheet=profile.log_sheet or os.getenv("LOG_SHEET", "Log"),
            log_to_sheet=_parse_bool("LOG_TO_SHEET", os.getenv("LOG_TO_SHEET", "true")),
            tracking_year=tracking_year,
            first_week_prior_year=first_week_prior_year,
            structured_output=structured_output,
        )
