from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── App ─────────────────────────────────────
    APP_NAME: str = "Product Page Optimizer"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    DEBUG: bool = True
    API_V1_PREFIX: str = "/api/v1"

    # ── Logging ─────────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = False
    LOG_DIR: str = "logs"

    # ── Page fetch ──────────────────────────────
    PAGE_FETCH_TIMEOUT: float = 30.0
    PAGE_FETCH_MAX_RETRIES: int = 1
    PAGE_USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )

    # ── Text generation (Replicate) ─────────────
    REPLICATE_API_TOKEN: Optional[str] = None
    REPLICATE_MODEL: str = "openai/gpt-5"
    REPLICATE_API_URL: str = "https://api.replicate.com/v1"
    LLM_MAX_RETRIES: int = 3
    LLM_RETRY_BASE_DELAY: float = 1.0
    LLM_RETRY_MAX_DELAY: float = 30.0
    LLM_POLL_INTERVAL: float = 1.0
    LLM_MAX_POLLS: int = 120  # 2 minutes at 1 poll per second
    LLM_MODEL_LOOKUP_TIMEOUT: float = 15.0
    LLM_CREATE_TIMEOUT: float = 30.0
    LLM_STATUS_TIMEOUT: float = 10.0
    LLM_EXTRACT_MAX_TOKENS: int = 4000
    LLM_ENHANCE_MAX_TOKENS: int = 5000

    # ── Performance (PageSpeed Insights) ────────
    PAGESPEED_API_KEY: Optional[str] = None
    PAGESPEED_API_URL: str = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"
    PAGESPEED_TIMEOUT: float = 90.0
    PAGESPEED_MAX_RETRIES: int = 2
    PAGESPEED_RETRY_BASE_DELAY: float = 1.0
    PAGESPEED_RETRY_MAX_DELAY: float = 30.0

    class Config:
        env_file = str(Path(__file__).parent.parent.parent / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
