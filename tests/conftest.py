"""Test configuration for pytest."""

import os
import shutil
import tempfile
from pathlib import Path

import pytest

from tests.fakes import GeminiStub, make_config


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path)


@pytest.fixture
def sample_config():
    """Create a sample configuration for testing."""
    return make_config()


@pytest.fixture
def recorded_sleeps():
    """Sleep replacement that records requested delays instead of waiting."""
    delays = []

    async def sleep(seconds):
        delays.append(seconds)

    sleep.delays = delays
    return sleep


@pytest.fixture
async def gemini_stub():
    """A running local Gemini imitation."""
    stub = GeminiStub()
    await stub.start()
    yield stub
    await stub.close()


@pytest.fixture(autouse=True)
def setup_test_environment(temp_dir, monkeypatch):
    """Isolate the home directory and set a test API key."""
    home = temp_dir / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))

    for key in list(os.environ):
        if key.startswith("SHELLMIND_") or key == "GEMINI_API_KEY":
            monkeypatch.delenv(key)

    monkeypatch.setenv("SHELLMIND_API_KEY", "test-key-gemini")
    yield
