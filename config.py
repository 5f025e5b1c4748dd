"""Environment-driven settings for the league rights server."""

from __future__ import annotations

import os
from typing import Optional

DB_PATH_ENV = "LEAGUE_DB_PATH"
ADMIN_TOKEN_ENV = "LEAGUE_ADMIN_TOKEN"
LOG_LEVEL_ENV = "LEAGUE_LOG_LEVEL"


def env_db_path() -> Optional[str]:
    value = (os.environ.get(DB_PATH_ENV) or "").strip()
    return value or None


def env_admin_token() -> str:
    return (os.environ.get(ADMIN_TOKEN_ENV) or "").strip()


def env_log_level() -> str:
    return (os.environ.get(LOG_LEVEL_ENV) or "INFO").strip().upper()
