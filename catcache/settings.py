"""
Runtime settings for the catcache proxy.
"""

import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

DEFAULT_UPSTREAM_URL = "https://http.cat/"
DEFAULT_LOG_LEVEL = "info"


class ProxySettings(BaseModel):
    """
    Resolved configuration for one proxy process.

    Built once at startup and handed to the app factory and the cache store.
    """
    host: str
    port: int = Field(ge=1, le=65535)
    cache_dir: Path
    upstream_url: str = DEFAULT_UPSTREAM_URL

    @field_validator("cache_dir")
    @classmethod
    def _absolute_cache_dir(cls, value: Path) -> Path:
        return value.expanduser().resolve()

    @field_validator("upstream_url")
    @classmethod
    def _trailing_slash(cls, value: str) -> str:
        # Keys are appended directly to the base URL
        return value if value.endswith("/") else value + "/"


def load_env(env_file: str = ".dev.env"):
    """Load local development overrides if the env file exists."""
    if os.path.exists(env_file):
        load_dotenv(env_file)


def env_upstream_url() -> str:
    return os.environ.get("CATCACHE_UPSTREAM_URL", DEFAULT_UPSTREAM_URL)


def env_log_level() -> str:
    return os.environ.get("CATCACHE_LOG_LEVEL", DEFAULT_LOG_LEVEL)


def build_settings(
    host: str,
    port: int,
    cache_dir: str,
    upstream_url: Optional[str] = None
) -> ProxySettings:
    """
    Build settings from CLI values, falling back to the environment.

    Args:
        host: Bind address
        port: Bind port
        cache_dir: Cache root directory (relative paths resolve from cwd)
        upstream_url: Upstream base URL, or None to use the environment default

    Returns:
        Validated ProxySettings
    """
    return ProxySettings(
        host=host,
        port=port,
        cache_dir=Path(cache_dir),
        upstream_url=upstream_url or env_upstream_url(),
    )
