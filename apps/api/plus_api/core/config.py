"""
Environment-driven settings.

Every getter reads the environment at call time so tests (and a restarted
worker) pick up changes without re-importing modules.
"""
from __future__ import annotations

import os

DEFAULT_DATABASE_URL = "sqlite:///./data/app.db"
DEFAULT_STORAGE_ROOT = "./data/storage"
DEFAULT_TEBEX_PLUGIN_API_URL = "https://plugin.tebex.io"


def _parse_bool(v: str | None, default: bool) -> bool:
    if v is None:
        return default
    vv = v.strip().lower()
    return vv not in ("0", "false", "no", "off", "")


def _parse_int(v: str | None, default: int) -> int:
    if v is None or v.strip() == "":
        return default
    try:
        return int(v)
    except ValueError:
        return default


def get_app_version() -> str:
    return os.getenv("APP_VERSION", "0.1.0")


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


def get_database_url() -> str:
    return os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)


def get_auto_create_schema() -> bool:
    return _parse_bool(os.getenv("AUTO_CREATE_SCHEMA"), default=True)


def get_storage_root_setting() -> str:
    return os.getenv("STORAGE_ROOT", DEFAULT_STORAGE_ROOT)


def get_asset_base_url() -> str:
    return os.getenv("ASSET_BASE_URL", "/assets").rstrip("/")


def get_cosmetic_cache_ttl() -> int:
    return _parse_int(os.getenv("COSMETIC_CACHE_TTL_SECONDS"), 3600)


def get_tebex_webhook_secret() -> str:
    return os.getenv("TEBEX_WEBHOOK_SECRET", "")


def get_tebex_game_server_secret() -> str:
    return os.getenv("TEBEX_GAME_SERVER_SECRET", "")


def get_tebex_plugin_api_url() -> str:
    return os.getenv("TEBEX_PLUGIN_API_URL", DEFAULT_TEBEX_PLUGIN_API_URL).rstrip("/")


def get_tebex_timeout() -> float:
    return float(_parse_int(os.getenv("TEBEX_TIMEOUT_SECONDS"), 10))


def get_player_token_secret() -> str:
    return os.getenv("PLAYER_TOKEN_SECRET", "")


def get_player_token_ttl() -> int:
    return _parse_int(os.getenv("PLAYER_TOKEN_TTL_SECONDS"), 7 * 24 * 3600)
