"""Configuration management for Tidy."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from .core.plan import Workspace

logger = logging.getLogger(__name__)

TIDY_HOME = Path(os.environ.get("TIDY_HOME", Path.home() / "tidy"))
CONFIG_FILE = TIDY_HOME / "config" / "tidy.conf"


@dataclass
class Config:
    """Tidy configuration."""

    backend_url: str = ""
    backend_api_key: str = ""
    access_token: str = ""
    author_id: str = ""
    couple_id: str = ""
    groupings_table: str = "clerk_lists"
    items_table: str = "clerk_notes"
    request_timeout: int = 30
    claude_timeout: int = 300
    # Telegram bot settings
    telegram_bot_token: str = ""
    telegram_allowed_users: list[int] = field(default_factory=list)

    @property
    def workspace(self) -> Workspace | None:
        """Workspace for this user, or None if no author is configured."""
        if not self.author_id:
            return None
        return Workspace(author_id=self.author_id, couple_id=self.couple_id or None)


def _parse_int(key: str, value: str, default: int) -> int:
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Invalid integer for {key.upper()}: {value!r}, using {default}")
        return default


def load_config() -> Config:
    """Load configuration from tidy.conf file."""
    config = Config()

    if not CONFIG_FILE.exists():
        return config

    for line in CONFIG_FILE.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = value.strip()

        # Handle quoted values with inline comments: "value" # comment
        if value.startswith('"'):
            end_quote = value.find('"', 1)
            if end_quote != -1:
                value = value[1:end_quote]
            else:
                value = value[1:]
        elif value.startswith("'"):
            end_quote = value.find("'", 1)
            if end_quote != -1:
                value = value[1:end_quote]
            else:
                value = value[1:]
        else:
            # Unquoted: strip inline comments
            if "#" in value:
                value = value.split("#")[0].strip()

        match key:
            case "backend_url":
                config.backend_url = value.rstrip("/")
            case "backend_api_key":
                config.backend_api_key = value
            case "access_token":
                config.access_token = value
            case "author_id":
                config.author_id = value
            case "couple_id":
                config.couple_id = value
            case "groupings_table":
                config.groupings_table = value
            case "items_table":
                config.items_table = value
            case "request_timeout":
                config.request_timeout = _parse_int(key, value, config.request_timeout)
            case "claude_timeout":
                config.claude_timeout = _parse_int(key, value, config.claude_timeout)
            case "telegram_bot_token":
                config.telegram_bot_token = value
            case "telegram_allowed_users":
                config.telegram_allowed_users = [int(u.strip()) for u in value.split(",") if u.strip()]
            case _:
                logger.debug(f"Ignoring unknown config key: {key}")

    return config
