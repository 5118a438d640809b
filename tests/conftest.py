"""
Shared pytest fixtures.

No test talks to OpenAI, Postgres or downloads a model: the OpenAI client,
vision model, image fetcher and database session are stubbed per test.
"""

import os
from unittest.mock import Mock

import pytest

os.environ.setdefault("AUTO_CREATE_TABLES", "false")
os.environ.pop("OPENAI_API_KEY", None)


@pytest.fixture
def llm_client():
    """Mock OpenAIClient with parse/create/embed methods."""
    client = Mock()
    client.parse = Mock()
    client.create = Mock()
    client.embed = Mock()
    return client


@pytest.fixture
def session():
    """Mock SQLAlchemy session."""
    return Mock()
