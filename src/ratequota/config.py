from __future__ import annotations

from dataclasses import dataclass
import os
import time

from .headers import HeaderNames
from .rate_limit import RateLimiter


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(slots=True)
class Settings:
    base_url: str = os.getenv("RATEQUOTA_BASE_URL", "")
    initial_limit: int = int(os.getenv("RATEQUOTA_INITIAL_LIMIT", "60"))
    initial_window_seconds: float = float(os.getenv("RATEQUOTA_INITIAL_WINDOW_SECONDS", "60"))
    header_prefix: str = os.getenv("RATEQUOTA_HEADER_PREFIX", "X-RateLimit")
    max_retries: int = int(os.getenv("RATEQUOTA_MAX_RETRIES", "5"))
    timeout_seconds: float = float(os.getenv("RATEQUOTA_TIMEOUT_SECONDS", "30"))
    strict_headers: bool = _env_flag("RATEQUOTA_STRICT_HEADERS")
    log_level: str = os.getenv("RATEQUOTA_LOG_LEVEL", "WARNING")

    def header_names(self) -> HeaderNames:
        return HeaderNames.with_prefix(self.header_prefix)

    def new_limiter(self) -> RateLimiter:
        if self.initial_window_seconds < 0:
            raise ValueError("initial_window_seconds must be >= 0")
        return RateLimiter(
            limit=self.initial_limit,
            reset_at=time.time() + self.initial_window_seconds,
            header_names=self.header_names(),
        )
