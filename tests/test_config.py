"""Tests for config.py configuration management."""

import os
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest

from habitgrid.config import DEFAULT_BASE_URL, DEFAULT_MODEL, Config, ProfileConfig
from habitgrid.exceptions import ConfigurationError
from habitgrid.prompts import YearRule


def _minimal_env(**overrides):
    """Minimal valid env vars."""
    env = {"GEMINI_API_KEY": "test-key"}
    env.update(overrides)
    return env


class TestConfigFromEnv:
    """Tests for Config.from_env() method."""

    def test_missing_api_key_raises(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ConfigurationError, match="GEMINI_API_KEY"):
                Config.from_env()

    def test_empty_api_key_raises(self):
        with patch.dict(os.environ, {"GEMINI_API_KEY": ""}, clear=True):
            with pytest.raises(ConfigurationError, match="GEMINI_API_KEY"):
                Config.from_env()

    def test_defaults(self):
        with patch.dict(os.environ, _minimal_env(), clear=True):
            config = Config.from_env()
        assert config.gemini_api_key == "test-key"
        assert config.model_id == DEFAULT_MODEL
        assert config.base_url == DEFAULT_BASE_URL
        assert config.request_timeout is None
        assert config.image_mime_type == "image/jpeg"
        assert config.workbook_path == Path("habits.xlsx")
        assert config.habits_sheet == "Habit List"
        assert config.weekly_sheet == "Weekly View"
        assert config.log_sheet == "Log"
        assert config.log_to_sheet is True
        assert config.tracking_year == datetime.now().year
        assert config.first_week_prior_year is True
        assert config.structured_output is False

    def test_env_overrides(self):
        env = _minimal_env(
            GEMINI_MODEL="gemini-2.5-pro",
            GEMINI_BASE_URL="https://proxy.local/v1beta/",
            GEMINI_TIMEOUT="45",
            WORKBOOK_PATH="/data/tracker.xlsx",
            WEEKLY_SHEET="Weeks",
            LOG_TO_SHEET="no",
            TRACKING_YEAR="2026",
            FIRST_WEEK_PRIOR_YEAR="false",
            STRUCTURED_OUTPUT="yes",
        )
        with patch.dict(os.environ, env, clear=True):
            config = Config.from_env()
        assert config.model_id == "gemini-2.5-pro"
        assert config.base_url == "https://proxy.local/v1beta"
        assert config.request_timeout == 45.0
        assert config.workbook_path == Path("/data/tracker.xlsx")
        assert config.weekly_sheet == "Weeks"
        assert config.log_to_sheet is False
        assert config.structured_output is True
        assert config.year_rule == YearRule(tracking_year=2026, first_week_prior_year=False)

    @pytest.mark.parametrize("name, value", [
        ("TRACKING_YEAR", "twenty"),
        ("GEMINI_TIMEOUT", "soon"),
        ("STRUCTURED_OUTPUT", "maybe"),
        ("LOG_TO_SHEET", "2"),
    ])
    def test_invalid_values_raise(self, name, value):
        with patch.dict(os.environ, _minimal_env(**{name: value}), clear=True):
            with pytest.raises(ConfigurationError, match=name):
                Config.from_env()

    def test_profile_overrides_env(self):
        profile = ProfileConfig(
            name="home",
            workbook_path=Path("/profiles/home.xlsx"),
            weekly_sheet="Profile Weeks",
            model_id="gemini-profile",
            tracking_year=2030,
            first_week_prior_year=False,
            structured_output=True,
        )
        env = _minimal_env(
            WORKBOOK_PATH="/env.xlsx",
            WEEKLY_SHEET="Env Weeks",
            GEMINI_MODEL="gemini-env",
            TRACKING_YEAR="2026",
            STRUCTURED_OUTPUT="false",
        )
        with patch.dict(os.environ, env, clear=True):
            config = Config.from_env(profile)
        assert config.workbook_path == Path("/profiles/home.xlsx")
        assert config.weekly_sheet == "Profile Weeks"
        assert config.model_id == "gemini-profile"
        assert config.tracking_year == 2030
        assert config.first_week_prior_year is False
        assert config.structured_output is True
        # Unset profile fields fall back to env/defaults
        assert config.habits_sheet == "Habit List"

    def test_profile_from_env_var(self, tmp_path):
        profile_path = tmp_path / "home.yaml"
        profile_path.write_text("weekly_sheet: From Profile\n", encoding="utf-8")
        env = _minimal_env(HABITGRID_PROFILE=str(profile_path))
        with patch.dict(os.environ, env, clear=True):
            config = Config.from_env()
        assert config.weekly_sheet == "From Profile"


class TestProfileConfig:
    """Tests for ProfileConfig.from_file()."""

    def test_yaml_profile(self, tmp_path):
        path = tmp_path / "tracker.yml"
        path.write_text(
            "name: Tracker\n"
            "workbook_path: /data/habits.xlsx\n"
            "habits_sheet: Habits\n"
            "tracking_year: 2026\n"
            "first_week_prior_year: true\n"
            "structured_output: 'off'\n",
            encoding="utf-8",
        )
        profile = ProfileConfig.from_file(path)
        assert profile.name == "Tracker"
        assert profile.workbook_path == Path("/data/habits.xlsx")
        assert profile.habits_sheet == "Habits"
        assert profile.tracking_year == 2026
        assert profile.first_week_prior_year is True
        assert profile.structured_output is False
        assert profile.model_id is None

    def test_json_profile_name_defaults_to_stem(self, tmp_path):
        path = tmp_path / "office.json"
        path.write_text('{"log_sheet": "Diagnostics"}', encoding="utf-8")
        profile = ProfileConfig.from_file(path)
        assert profile.name == "office"
        assert profile.log_sheet == "Diagnostics"

    def test_empty_yaml_profile(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert ProfileConfig.from_file(path).workbook_path is None

    def test_missing_profile_raises(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Profile not found"):
            ProfileConfig.from_file(tmp_path / "nope.yaml")

    def test_non_mapping_profile_raises(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="mapping"):
            ProfileConfig.from_file(path)

    def test_invalid_year_raises(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("tracking_year: soon\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="tracking_year"):
            ProfileConfig.from_file(path)
