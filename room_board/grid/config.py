# Environment backed settings for the board
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
DEFAULT_DAY_START_HOUR = 7
DEFAULT_DAY_END_HOUR = 18
DEFAULT_REFRESH_INTERVAL_MINUTES = 5
# Auto-advance cadence of the pagination timer
AUTO_ADVANCE_SECONDS = 30


@dataclass
class BoardConfig:
    page_size: int = DEFAULT_PAGE_SIZE
    day_start_hour: int = DEFAULT_DAY_START_HOUR
    day_end_hour: int = DEFAULT_DAY_END_HOUR
    refresh_interval_minutes: float = DEFAULT_REFRESH_INTERVAL_MINUTES
    auto_advance_seconds: float = AUTO_ADVANCE_SECONDS
    calendar_ids: List[str] = field(default_factory=list)
    directory_customer: str = "my_customer"
    admin_email: Optional[str] = None
    service_account_file: Optional[str] = None
    database_url: Optional[str] = None

    @property
    def refresh_interval_seconds(self) -> float:
        return self.refresh_interval_minutes * 60

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BoardConfig":
        """
        Reads the BOARD_* environment variables. Every one of them is optional.
        Values that do not parse fall back to their default and a warning is logged.
        """
        environ = os.environ if environ is None else environ
        config = cls(
            page_size=_read_int(environ, "BOARD_PAGE_SIZE", DEFAULT_PAGE_SIZE, minimum=1),
            day_start_hour=_read_int(environ, "BOARD_DAY_START_HOUR", DEFAULT_DAY_START_HOUR, minimum=0, maximum=23),
            day_end_hour=_read_int(environ, "BOARD_DAY_END_HOUR", DEFAULT_DAY_END_HOUR, minimum=1, maximum=24),
            refresh_interval_minutes=_read_int(environ, "BOARD_REFRESH_INTERVAL_MINUTES", DEFAULT_REFRESH_INTERVAL_MINUTES, minimum=1),
            calendar_ids=[cid.strip() for cid in environ.get("BOARD_CALENDAR_IDS", "").split(",") if cid.strip()],
            directory_customer=environ.get("BOARD_DIRECTORY_CUSTOMER", "my_customer"),
            admin_email=environ.get("BOARD_ADMIN_EMAIL"),
            service_account_file=_find_api_key(environ),
            database_url=environ.get("DATABASE_URL"),
        )
        if config.day_start_hour >= config.day_end_hour:
            logger.warning("Day start hour %s is not before day end hour %s, using %s-%s",
                           config.day_start_hour, config.day_end_hour, DEFAULT_DAY_START_HOUR, DEFAULT_DAY_END_HOUR)
            config.day_start_hour = DEFAULT_DAY_START_HOUR
            config.day_end_hour = DEFAULT_DAY_END_HOUR
        return config


def _read_int(environ: Mapping[str, str], name: str, default: int, minimum: Optional[int] = None, maximum: Optional[int] = None) -> int:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Invalid value for %s: %r, using default %s", name, raw, default)
        return default
    if (minimum is not None and value < minimum) or (maximum is not None and value > maximum):
        logger.warning("Out of range value for %s: %s, using default %s", name, value, default)
        return default
    return value


def _find_api_key(environ: Mapping[str, str]) -> str:
    """
    Credentials.from_service_account_file() takes a file path, so find it from the environment variable in prod or the local dev file.
    """
    api_key_path = environ.get('SERVICE_ACCOUNT_FILE')
    # If none, then get local development key
    if not api_key_path:
        api_key_path = str(Path("./room_board/service-account.json"))
    return api_key_path
