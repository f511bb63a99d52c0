"""
config.py
---------

Runtime settings read from the environment. Only the HTTP surface and the
logging setup need them; the parser and analytics take no configuration.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass
class Settings:
    secret_key: str = "dev-secret"
    max_upload_mb: int = 16
    preview_rows: int = 10
    log_level: str = "INFO"

    @property
    def max_content_length(self) -> int:
        return self.max_upload_mb * 1024 * 1024


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from environment variables (os.environ by default)."""
    env = os.environ if env is None else env
    return Settings(
        secret_key=env.get("SECRET_KEY", "dev-secret"),
        max_upload_mb=_env_int(env, "TRADELOG_MAX_UPLOAD_MB", 16),
        preview_rows=_env_int(env, "TRADELOG_PREVIEW_ROWS", 10),
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
    )
