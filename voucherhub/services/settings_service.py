from sqlalchemy.orm import Session
from typing import Any, Dict
import logging

from voucherhub.config import settings as app_settings
from voucherhub.database import store_errors
from voucherhub.repositories.settings_repo import SettingsRepository

logger = logging.getLogger(__name__)

CLAIM_ENABLED = "claim_enabled"
DAILY_LIMIT = "daily_limit"
KNOWN_KEYS = (CLAIM_ENABLED, DAILY_LIMIT)

FALSE_VALUES = {"false", "0", "no", "off"}
TRUE_VALUES = {"true", "1", "yes", "on"}


def parse_claim_enabled(raw, default: bool = True) -> bool:
    """Unset means the default; only an explicit false-like value closes claims."""
    if raw is None:
        return default
    return str(raw).strip().lower() not in FALSE_VALUES


def parse_daily_limit(raw, default: int = 1000) -> int:
    """Unset, unparsable or negative values fall back to the default."""
    if raw is None:
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        logger.warning(f"Unparsable daily_limit {raw!r}, using {default}")
        return default
    if value < 0:
        logger.warning(f"Negative daily_limit {value}, using {default}")
        return default
    return value


def normalize_setting(key: str, value: Any) -> str:
    """Validate a known key and return the stored string form. Raises ValueError."""
    if key == CLAIM_ENABLED:
        text = str(value).strip().lower()
        if text in TRUE_VALUES:
            return "true"
        if text in FALSE_VALUES:
            return "false"
        raise ValueError(f"claim_enabled must be a boolean, got {value!r}")

    if key == DAILY_LIMIT:
        if isinstance(value, bool):
            raise ValueError("daily_limit must be a non-negative integer")
        try:
            limit = int(str(value).strip())
        except ValueError:
            raise ValueError(f"daily_limit must be a non-negative integer, got {value!r}")
        if limit < 0:
            raise ValueError("daily_limit must be a non-negative integer")
        return str(limit)

    raise ValueError(f"Unknown setting: {key}")


class SettingsService:
    def __init__(self, db: Session, config=app_settings):
        self.db = db
        self.config = config
        self.repo = SettingsRepository(db)

    def get_claim_enabled(self) -> bool:
        with store_errors(self.db, "settings read"):
            raw = self.repo.get_value(CLAIM_ENABLED)
        return parse_claim_enabled(raw, self.config.DEFAULT_CLAIM_ENABLED)

    def get_daily_limit(self) -> int:
        with store_errors(self.db, "settings read"):
            raw = self.repo.get_value(DAILY_LIMIT)
        return parse_daily_limit(raw, self.config.DEFAULT_DAILY_LIMIT)

    def get_settings(self) -> Dict[str, Any]:
        with store_errors(self.db, "settings read"):
            values = self.repo.get_all()
        return {
            CLAIM_ENABLED: parse_claim_enabled(values.get(CLAIM_ENABLED), self.config.DEFAULT_CLAIM_ENABLED),
            DAILY_LIMIT: parse_daily_limit(values.get(DAILY_LIMIT), self.config.DEFAULT_DAILY_LIMIT),
        }

    def set_setting(self, key: str, value: Any) -> Dict[str, Any]:
        stored = normalize_setting(key, value)
        with store_errors(self.db, "settings write"):
            self.repo.upsert(key, stored)
        logger.info(f"Setting {key} updated to {stored}")
        return self.get_settings()
