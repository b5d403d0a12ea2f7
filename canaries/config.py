"""Configuration management for the canaries."""

import os
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_FRONTEND_URL = "http://localhost"
DEFAULT_USERNAME = "testuser"
DEFAULT_PASSWORD = "bankofanthos"


class CanaryConfig(BaseModel):
    """Immutable settings for one canary invocation."""

    model_config = ConfigDict(frozen=True)

    # Target application
    frontend_url: str = Field(default=DEFAULT_FRONTEND_URL, description="Base URL of the frontend under test")
    username: str = Field(default=DEFAULT_USERNAME, description="Login username")
    password: str = Field(default=DEFAULT_PASSWORD, description="Login password")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    # Browser settings
    browser_headless: bool = Field(default=True, description="Run browser in headless mode")
    chromium_path: Optional[str] = Field(default=None, description="Chromium executable override")
    viewport_width: int = Field(default=1920, description="Page viewport width")
    viewport_height: int = Field(default=1080, description="Page viewport height")

    # Step artifacts
    artifacts_dir: str = Field(default="artifacts", description="Directory for screenshots and run results")
    write_artifacts: bool = Field(default=True, description="Write screenshots and result.json")
    screenshot_on_step_start: bool = Field(default=True, description="Screenshot before each step")
    screenshot_on_step_success: bool = Field(default=True, description="Screenshot after each passed step")
    screenshot_on_step_failure: bool = Field(default=True, description="Screenshot after each failed step")

    @field_validator("frontend_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        cleaned = str(value or "").strip().rstrip("/")
        return cleaned or DEFAULT_FRONTEND_URL


_BOOL_KEYS = {
    "browser_headless",
    "write_artifacts",
    "screenshot_on_step_start",
    "screenshot_on_step_success",
    "screenshot_on_step_failure",
}
_INT_KEYS = {"viewport_width", "viewport_height"}


def load_config(config_path: Optional[str] = None) -> CanaryConfig:
    """Load configuration from an optional YAML file, then environment variables."""
    if config_path is None:
        config_path = os.getenv("CANARY_CONFIG", "config/canaries.yaml")

    config_data = {}

    if os.path.exists(config_path):
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}

    env_overrides = {
        "frontend_url": os.getenv("FRONTEND_URL"),
        "username": os.getenv("TEST_USERNAME"),
        "password": os.getenv("TEST_PASSWORD"),
        "log_level": os.getenv("LOG_LEVEL"),
        "browser_headless": os.getenv("BROWSER_HEADLESS"),
        "chromium_path": os.getenv("CHROMIUM_PATH"),
        "artifacts_dir": os.getenv("CANARY_ARTIFACTS_DIR"),
        "write_artifacts": os.getenv("CANARY_WRITE_ARTIFACTS"),
        "viewport_width": os.getenv("VIEWPORT_WIDTH"),
        "viewport_height": os.getenv("VIEWPORT_HEIGHT"),
    }

    # Empty values fall back to the defaults, same as unset ones.
    for key, value in env_overrides.items():
        if value is None or not value.strip():
            continue
        if key in _INT_KEYS:
            value = int(value)
        elif key in _BOOL_KEYS:
            value = value.strip().lower() in ("true", "1", "yes")
        config_data[key] = value

    return CanaryConfig(**config_data)
