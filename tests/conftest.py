"""
Test configuration and fixtures for the Product Page Optimizer API.

No test talks to the network: upstream services are replaced with
``httpx.MockTransport`` handlers or mocked services, and every retry or poll
delay is zeroed through injected settings and sleep functions.
"""

import os
from typing import Generator

from dotenv import load_dotenv

import pytest
from fastapi.testclient import TestClient

load_dotenv()

# Settings are read at import time; keep tests independent of a developer .env.
os.environ["LOG_TO_FILE"] = "false"
os.environ["REPLICATE_API_TOKEN"] = ""
os.environ["PAGESPEED_API_KEY"] = ""

from app.platform.config import Settings  # noqa: E402
from app.platform.retry import RetryPolicy  # noqa: E402

VALID_PAGESPEED_KEY = "AIzaSyTestKey_0123456789abcdef"


async def no_sleep(_delay: float) -> None:
    return None


@pytest.fixture
def test_settings() -> Settings:
    """Settings with credentials present and every delay set to zero."""
    return Settings(
        REPLICATE_API_TOKEN="r8_test_token",
        REPLICATE_MODEL="openai/gpt-5",
        REPLICATE_API_URL="https://llm.test/v1",
        LLM_MAX_RETRIES=2,
        LLM_RETRY_BASE_DELAY=0,
        LLM_RETRY_MAX_DELAY=0,
        LLM_POLL_INTERVAL=0,
        LLM_MAX_POLLS=5,
        PAGESPEED_API_KEY=VALID_PAGESPEED_KEY,
        PAGESPEED_API_URL="https://perf.test/runPagespeed",
        PAGESPEED_MAX_RETRIES=2,
        PAGESPEED_RETRY_BASE_DELAY=0,
        PAGESPEED_RETRY_MAX_DELAY=0,
        PAGE_FETCH_MAX_RETRIES=0,
        LOG_TO_FILE=False,
    )


@pytest.fixture
def instant_retry() -> RetryPolicy:
    return RetryPolicy(max_retries=2, base_delay=0, max_delay=0, sleep=no_sleep)


@pytest.fixture(scope="session")
def test_app():
    """Create FastAPI test application."""
    from app.main import app

    return app


@pytest.fixture(scope="function")
def client(test_app) -> Generator[TestClient, None, None]:
    """
    Create a test client for making HTTP requests.
    Dependency overrides are cleared after each test.
    """
    with TestClient(test_app) as test_client:
        yield test_client
    test_app.dependency_overrides.clear()
