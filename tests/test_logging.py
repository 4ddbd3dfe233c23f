from __future__ import annotations

import sys

import pytest
from loguru import logger

from restresource.logging import configure_logging
from restresource.security import sanitize_headers


@pytest.fixture
def restore_logger():
    yield
    logger.remove()
    logger.add(sys.stderr)


def test_configure_logging_filters_by_level(capsys, restore_logger) -> None:
    configure_logging("warning")

    logger.info("hidden message")
    logger.warning("visible message")

    err = capsys.readouterr().err
    assert "visible message" in err
    assert "hidden message" not in err
    assert "WARNING" in err


def test_sanitize_headers_redacts_credentials() -> None:
    headers = {"Authorization": "Bearer abc", "Cookie": "sid=1", "Accept": "application/json"}

    assert sanitize_headers(headers) == {
        "Authorization": "[REDACTED]",
        "Cookie": "[REDACTED]",
        "Accept": "application/json",
    }
    assert sanitize_headers(None) == {}
