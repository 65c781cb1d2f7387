"""
Runtime configuration for the jewelry admin panel.

Values come from the process environment; a local .env file is loaded first
when present so development setups do not need exported variables.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

ADMIN_URI_VARIABLES = ("ADMIN_MONGODB_URI", "MONGODB_URI")

DEFAULT_ADMIN_DATABASE = "jewelry_admin_panel"
DEFAULT_SHOP_DATABASE = "test"
DEFAULT_RATES_URL = "https://ibja.co/"


@dataclass(frozen=True)
class Settings:
    admin_mongodb_uri: Optional[str] = None
    shop_db_timeout_ms: int = 5000
    rates_url: str = DEFAULT_RATES_URL
    rates_cache_seconds: int = 60 * 60
    rates_timeout_seconds: int = 15
    log_level: str = "INFO"
    port: int = 8000
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


def _admin_uri_from_env() -> Optional[str]:
    for name in ADMIN_URI_VARIABLES:
        value = os.getenv(name)
        if value:
            return value
    return None


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """
    Build Settings from the environment.

    Args:
        env_file: Optional .env path (defaults to .env beside this module)

    Returns:
        Frozen Settings instance
    """
    load_dotenv(env_file or Path(__file__).parent / ".env")

    origins = os.getenv("CORS_ORIGINS", "*")
    return Settings(
        admin_mongodb_uri=_admin_uri_from_env(),
        shop_db_timeout_ms=int(os.getenv("SHOP_DB_TIMEOUT_MS", 5000)),
        rates_url=os.getenv("RATES_URL", DEFAULT_RATES_URL),
        rates_cache_seconds=int(os.getenv("RATES_CACHE_SECONDS", 60 * 60)),
        rates_timeout_seconds=int(os.getenv("RATES_TIMEOUT_SECONDS", 15)),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        port=int(os.getenv("PORT", 8000)),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
    )
