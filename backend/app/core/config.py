"""
Application configuration.

All values come from environment variables (a local .env file is loaded first).
Settings are resolved lazily and cached, so importing this module never fails
on a machine without credentials.
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv, find_dotenv

_ = load_dotenv(find_dotenv())

# Log directory (relative to backend/)
DEFAULT_LOG_DIR = Path(__file__).parent.parent.parent / "logs"

DISPATCH_MODE_LOCAL = "local"
DISPATCH_MODE_CELERY = "celery"

# Celery queues: user-triggered syncs go to SYNC_QUEUE
SYNC_QUEUE = "high"
DEFAULT_QUEUE = "default"


@dataclass(frozen=True)
class Settings:
    # Supabase
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""

    # Queue
    redis_url: str = "redis://localhost:6379/0"
    sync_dispatch_mode: str = DISPATCH_MODE_LOCAL  # "local" or "celery"

    # GitHub
    github_api_url: str = "https://api.github.com"
    github_request_timeout_seconds: float = 30.0
    github_fetch_timeout_seconds: float = 300.0
    github_page_size: int = 100

    # Catalog paging
    default_page_size: int = 10
    default_page_nm: int = 1

    # Logging
    log_dir: str = str(DEFAULT_LOG_DIR)
    log_level: str = "INFO"


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings from the environment (cached per process)."""
    defaults = Settings()
    mode = os.getenv("SYNC_DISPATCH_MODE", defaults.sync_dispatch_mode).strip().lower()
    if mode not in (DISPATCH_MODE_LOCAL, DISPATCH_MODE_CELERY):
        raise ValueError(
            f"SYNC_DISPATCH_MODE must be '{DISPATCH_MODE_LOCAL}' or '{DISPATCH_MODE_CELERY}', got '{mode}'"
        )

    return Settings(
        supabase_url=os.getenv("SUPABASE_URL", ""),
        supabase_anon_key=os.getenv("SUPABASE_ANON_KEY", ""),
        supabase_service_role_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY", ""),
        redis_url=os.getenv("REDIS_URL", defaults.redis_url),
        sync_dispatch_mode=mode,
        github_api_url=os.getenv("GITHUB_API_URL", defaults.github_api_url).rstrip("/"),
        github_request_timeout_seconds=_env_float(
            "GITHUB_REQUEST_TIMEOUT_SECONDS", defaults.github_request_timeout_seconds
        ),
        github_fetch_timeout_seconds=_env_float(
            "GITHUB_FETCH_TIMEOUT_SECONDS", defaults.github_fetch_timeout_seconds
        ),
        github_page_size=_env_int("GITHUB_PAGE_SIZE", defaults.github_page_size),
        default_page_size=_env_int("DEFAULT_PAGE_SIZE", defaults.default_page_size),
        default_page_nm=_env_int("DEFAULT_PAGE_NM", defaults.default_page_nm),
        log_dir=os.getenv("LOG_DIR", defaults.log_dir),
        log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
    )
