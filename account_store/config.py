from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import os


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Runtime configuration values consumed when repositories are constructed."""

    app_name: str = "account-store"
    version: str = "0.1.0"
    backend: str = os.getenv("ACCOUNT_STORE_BACKEND", "elasticsearch").lower()
    elastic_url: str = os.getenv("ELASTIC_SEARCH_URL", "http://localhost:9200")
    elastic_auth: str = os.getenv("ELASTIC_AUTH", "")
    elastic_request_timeout: float = float(os.getenv("ELASTIC_REQUEST_TIMEOUT", "10"))
    search_size: int = int(os.getenv("ELASTIC_SEARCH_SIZE", "5000"))
    scroll_size: int = int(os.getenv("ELASTIC_SCROLL_SIZE", "1000"))
    scroll_keep_alive: str = os.getenv("ELASTIC_SCROLL_KEEP_ALIVE", "30s")
    ensure_index: bool = _env_flag("ELASTIC_ENSURE_INDEX", "true")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def basic_auth(self) -> tuple[str, str] | None:
        """Split ``ELASTIC_AUTH`` (``user:password``) into a client credential pair."""
        if not self.elastic_auth:
            return None
        username, _, password = self.elastic_auth.partition(":")
        return username, password


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached Settings instance for the running process."""
    return Settings()
