"""Pytest configuration and fixtures."""

import os

import pytest

from promptmux.core.config import Settings
from promptmux.core.workspace_state import load_or_create_workspace_state
from tests.fakes.fake_store import FakeDocumentStore


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["PROMPTMUX_ENV"] = "test"
    os.environ["OPENAI_API_KEY"] = "test-openai-key"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        PROMPTMUX_ENV="test",
        PROMPTMUX_DATA_DIR=str(tmp_path),
        OPENAI_API_KEY="test-openai-key",
        ANTHROPIC_API_KEY="",
    )


@pytest.fixture
def store():
    return FakeDocumentStore()


@pytest.fixture
def state(store, settings):
    """Fresh workspace seeded with one default project."""
    return load_or_create_workspace_state(store, settings)
