# domlocator/utils/config.py
from __future__ import annotations

import functools
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ---------- Enums ----------

class BrowserType(str, Enum):
    chromium = "chromium"
    firefox = "firefox"
    webkit = "webkit"


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


# ---------- Settings ----------

class Settings(BaseSettings):
    """
    Central configuration for domlocator.

    Values load in this order of precedence:
      1) Environment variables
      2) .env file in project root
      3) Defaults below
    """

    # ---- Locator defaults ----
    LOCATOR_TIMEOUT_MS: int = Field(default=30_000, description="Default locator deadline; <= 0 disables it")
    RETRY_DELAY_MS: int = Field(default=100, ge=0, description="Pause between locator attempts")
    ENSURE_IN_VIEWPORT: bool = Field(default=True)
    WAIT_FOR_ENABLED: bool = Field(default=True)
    WAIT_FOR_STABLE_BOUNDING_BOX: bool = Field(default=True)

    # ---- Selector engine ----
    MATCHER_BUNDLE_PATH: Optional[Path] = Field(
        default=None,
        description="JS file evaluating to the in-page matcher utility (text/P selectors)",
    )
    HANDLERS_FILE: Optional[Path] = Field(
        default=None,
        description="YAML catalog of custom query handlers registered at startup",
    )

    # ---- Browser configuration (Playwright adapter) ----
    HEADLESS: bool = Field(default=True, description="Run the browser headless")
    BROWSER_TYPE: BrowserType = Field(default=BrowserType.chromium, description="Playwright browser")
    VIEWPORT_WIDTH: int = Field(default=1366, ge=320, le=7680)
    VIEWPORT_HEIGHT: int = Field(default=768, ge=320, le=4320)
    SLOW_MO: int = Field(default=0, ge=0, description="Slow down actions (ms) for debugging")
    PAGE_LOAD_TIMEOUT: int = Field(default=60000, ge=1000)

    # ---- Logging ----
    LOG_LEVEL: LogLevel = Field(default=LogLevel.INFO)
    LOG_TO_FILE: bool = Field(default=False)
    LOG_FILE: Path = Field(default=Path("./domlocator.log"))
    COLORIZED_OUTPUT: bool = Field(default=True)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # ignore unknown envs to keep things flexible
    )

    @field_validator("MATCHER_BUNDLE_PATH", "HANDLERS_FILE", "LOG_FILE", mode="before")
    @classmethod
    def _coerce_to_path(cls, v):
        if v is None or v == "":
            return None
        if isinstance(v, Path):
            return v
        return Path(str(v))

    @field_validator("MATCHER_BUNDLE_PATH", "HANDLERS_FILE", "LOG_FILE", mode="after")
    @classmethod
    def _absolutize(cls, v: Optional[Path]):
        if v is None:
            return v
        return v if v.is_absolute() else Path.cwd() / v

    def ensure_dirs(self) -> None:
        """Create the log directory when file logging is on (idempotent)."""
        if self.LOG_TO_FILE:
            self.LOG_FILE.parent.mkdir(parents=True, exist_ok=True)

    # Convenience: Playwright launch options dict
    def playwright_launch_kwargs(self) -> dict:
        return {
            "headless": self.HEADLESS,
            "slow_mo": self.SLOW_MO,
        }

    # Convenience: Playwright new_context kwargs
    def playwright_context_kwargs(self) -> dict:
        return {"viewport": {"width": self.VIEWPORT_WIDTH, "height": self.VIEWPORT_HEIGHT}}


# --------- Public accessor (memoized) ---------

@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Load and cache settings once per process.
    Call `get_settings.cache_clear()` if you need to reload after changing env.
    """
    s = Settings()
    s.ensure_dirs()
    return s
