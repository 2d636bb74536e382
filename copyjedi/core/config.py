"""
Configuration for the paste tracker and the leaderboard service.
Values come from the environment (optionally a .env file).
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from dotenv import load_dotenv

from .exceptions import ConfigurationError

load_dotenv()

# Leaderboard service configuration
DB_PATH = os.getenv("DB_PATH", "./data/leaderboard.db")
PORT = int(os.getenv("PORT", "3000"))

DEFAULT_API_URL = "https://api.copyjedi.com"
DEFAULT_SERVER_URL = "http://localhost:3000"
DEFAULT_STATS_PATH = str(Path.home() / ".copyjedi" / "stats.json")

# Version string
VERSION = "0.1.0"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class ClassifierConfig:
    """Thresholds used by the paste heuristic."""
    clipboard_prefix_len: int = 20
    min_text_len: int = 5
    bulk_min_len: int = 50
    bulk_min_lines: int = 2
    bulk_min_columns: int = 10
    shortcut_min_len: int = 10
    shortcut_interval_ms: int = 300
    shortcut_validity_ms: int = 500
    throttle_ms: int = 300
    code_sample_chars: int = 1000


@dataclass
class Settings:
    """Tracker and client settings, one field per user-facing option."""
    stats_path: str = DEFAULT_STATS_PATH
    enable_notifications: bool = True
    auto_reset_daily: bool = True
    leaderboard_enabled: bool = False
    leaderboard_api_url: str = ""
    leaderboard_server_url: str = DEFAULT_SERVER_URL
    auto_sync: bool = True
    sync_interval_min: int = 5
    debug_mode: bool = False
    require_code_patterns: bool = True
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)

    @classmethod
    def from_env(cls) -> "Settings":
        raw_interval = os.getenv("COPYJEDI_SYNC_INTERVAL", "5")
        try:
            sync_interval = int(raw_interval)
        except ValueError as e:
            raise ConfigurationError(f"COPYJEDI_SYNC_INTERVAL must be an integer, got {raw_interval!r}", e)

        return cls(
            stats_path=os.getenv("COPYJEDI_STATS_PATH", DEFAULT_STATS_PATH),
            enable_notifications=_env_bool("COPYJEDI_ENABLE_NOTIFICATIONS", "true"),
            auto_reset_daily=_env_bool("COPYJEDI_AUTO_RESET_DAILY", "true"),
            leaderboard_enabled=_env_bool("COPYJEDI_LEADERBOARD_ENABLED", "false"),
            leaderboard_api_url=os.getenv("COPYJEDI_LEADERBOARD_API_URL", ""),
            leaderboard_server_url=os.getenv("COPYJEDI_LEADERBOARD_SERVER_URL", DEFAULT_SERVER_URL),
            auto_sync=_env_bool("COPYJEDI_AUTO_SYNC", "true"),
            sync_interval_min=sync_interval,
            debug_mode=_env_bool("COPYJEDI_DEBUG_MODE", "false"),
            require_code_patterns=_env_bool("COPYJEDI_REQUIRE_CODE_PATTERNS", "true"),
        )

    @property
    def api_url(self) -> str:
        """Server URL with the same precedence the editor settings use."""
        return self.leaderboard_api_url or self.leaderboard_server_url or DEFAULT_API_URL


def get_db_path() -> str:
    """Database path, re-read so tests can point it elsewhere."""
    return os.getenv("DB_PATH", DB_PATH)


def debug_enabled():
    """Check if service debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"


def ensure_db_directory():
    """Ensure the database directory exists."""
    Path(get_db_path()).parent.mkdir(parents=True, exist_ok=True)


def validate_settings(settings: Settings) -> List[str]:
    """Validate settings and return any issues."""
    issues = []

    if settings.sync_interval_min < 1:
        issues.append("COPYJEDI_SYNC_INTERVAL must be >= 1")

    if settings.leaderboard_enabled and not settings.api_url:
        issues.append("COPYJEDI_LEADERBOARD_ENABLED requires a leaderboard URL")

    for url in (settings.leaderboard_api_url, settings.leaderboard_server_url):
        if url and not url.startswith(("http://", "https://")):
            issues.append(f"Invalid leaderboard URL: {url}")

    if not settings.stats_path:
        issues.append("COPYJEDI_STATS_PATH cannot be empty")

    return issues
