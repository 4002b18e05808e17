"""Shared test fixtures."""

from collections.abc import Iterator

import pytest
from loguru import logger

from tests.unit.fakes import FakeHttp, FakeWriter


@pytest.fixture
def fake_http() -> FakeHttp:
    return FakeHttp()


@pytest.fixture
def fake_writer() -> FakeWriter:
    return FakeWriter()


@pytest.fixture
def log_messages() -> Iterator[list[str]]:
    """Capture every message logged through loguru during the test."""
    messages: list[str] = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
