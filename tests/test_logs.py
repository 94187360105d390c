"""Tests for logging setup."""

import logging

import pytest
from rich.logging import RichHandler

from shellmind.config import LogLevel
from shellmind.errors import TransientTransportError
from shellmind.logs import configure_logging
from shellmind.session import AssistantSession
from tests.fakes import FakeTransport, make_config


def rich_handlers(logger):
    return [h for h in logger.handlers if isinstance(h, RichHandler)]


@pytest.fixture(autouse=True)
def restore_level():
    yield
    configure_logging(LogLevel.WARNING)


def test_configure_logging_sets_level():
    logger = configure_logging("debug")

    assert logger.name == "shellmind"
    assert logger.level == logging.DEBUG
    assert len(rich_handlers(logger)) == 1


def test_configure_logging_reuses_handler():
    configure_logging(LogLevel.INFO)
    logger = configure_logging(LogLevel.ERROR)

    assert len(rich_handlers(logger)) == 1
    assert logger.level == logging.ERROR
    assert rich_handlers(logger)[0].level == logging.ERROR


def test_unknown_level_falls_back_to_warning():
    assert configure_logging("chatty").level == logging.WARNING


async def test_retries_are_logged(caplog, recorded_sleeps):
    caplog.set_level(logging.INFO, logger="shellmind")
    config = make_config(retry_backoff_ms=100)
    transport = FakeTransport(
        config, [TransientTransportError("API request failed with status 503", status=503), "ok"]
    )
    session = AssistantSession(config, transport, sleep=recorded_sleeps)

    await session.handle_input("hi")

    assert "Attempt 1/4 failed" in caplog.text
    assert "retrying in 0.10s" in caplog.text
