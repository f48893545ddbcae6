"""Pytest configuration and fixtures."""

import os

import pytest

# Set before test modules import the app, which reads settings at import time
os.environ["SUPABASE_URL"] = "https://test.supabase.co"
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-key"
os.environ["OPENAI_API_KEY"] = "test-openai-key"
os.environ["ANTHROPIC_API_KEY"] = "test-anthropic-key"
os.environ["ASSISTANT_ENV"] = "test"


@pytest.fixture
def no_backoff_sleep():
    """Make retry backoff instant and record the requested delays."""
    from unittest.mock import AsyncMock, patch

    with patch("daybook.core.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep
