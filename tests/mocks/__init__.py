"""
Mock Factories Package

Provides factory functions for gateway responses and a transport double
that records what the dispatchers send.
"""
from tests.mocks.http_mocks import (
    create_transport_response,
    create_json_response,
    create_error_response,
    create_mock_transport,
)

__all__ = [
    "create_transport_response",
    "create_json_response",
    "create_error_response",
    "create_mock_transport",
]
