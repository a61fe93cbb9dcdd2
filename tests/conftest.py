"""Pytest fixtures and configuration for test suite

This module provides:
1. A mock HTTP transport fixture for dispatcher tests
2. Log capture helpers scoped to the pushbridge loggers
"""
import logging

import pytest

from tests.mocks.http_mocks import create_mock_transport


@pytest.fixture
def mock_transport():
    """Transport double whose post() returns a bare 200 unless reconfigured."""
    return create_mock_transport()


@pytest.fixture
def push_warnings(caplog):
    """
    Capture pushbridge logs and return a getter for the WARNING records.

    Example:
        response = await dispatcher.push(payload, ["a"])
        assert len(push_warnings()) == 1
    """
    caplog.set_level(logging.DEBUG, logger="pushbridge")

    def get_warnings():
        return [
            record for record in caplog.records
            if record.levelno == logging.WARNING and record.name.startswith("pushbridge")
        ]

    return get_warnings
