"""Environment-driven settings.

Values come from the process environment, with a .env file in the working
directory loaded first when python-dotenv finds one. Database connection
variables are the same SUPABASE_DB_* variables the stores read.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from .schema import REVISION_TAG_ATTRIBUTE


@dataclass
class Settings:
    db_url: Optional[str] = None
    attachment_library: str = "MIS_Attachement"
    tag_attribute: str = REVISION_TAG_ATTRIBUTE
    statement_timeout_ms: int = 30000
    connect_timeout: int = 10
    max_workers: int = 1
    log_level: str = "INFO"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Build Settings from the environment.

    Args:
        env_file: Optional path to a .env file; defaults to searching from the
            working directory. Existing environment variables win.
    """
    load_dotenv(env_file or find_dotenv(usecwd=True), override=False)

    settings = Settings(
        db_url=os.getenv("SUPABASE_DB_URL") or None,
        attachment_library=os.getenv("MIS_ATTACHMENT_LIBRARY", "MIS_Attachement"),
        tag_attribute=os.getenv("MIS_TAG_ATTRIBUTE", REVISION_TAG_ATTRIBUTE),
        statement_timeout_ms=_int_env("MIS_STATEMENT_TIMEOUT_MS", 30000),
        connect_timeout=_int_env("MIS_CONNECT_TIMEOUT", 10),
        max_workers=_int_env("MIS_MAX_WORKERS", 1),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )

    if settings.max_workers < 1:
        raise ValueError("MIS_MAX_WORKERS must be at least 1")
    if settings.statement_timeout_ms <= 0:
        raise ValueError("MIS_STATEMENT_TIMEOUT_MS must be positive")

    return settings
