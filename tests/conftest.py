"""Pytest configuration and fixtures."""

import pytest
from phoenixa import Request


@pytest.fixture
def make_request():
    """Create a GET request for http://localhost/ with overridable arguments."""

    def _make(requested_uri="http://localhost/", method="GET", **kwargs):
        return Request(method, requested_uri, **kwargs)

    return _make


@pytest.fixture
def chunk_stream():
    """Create an async byte stream from the given chunks."""

    def _stream(*chunks):
        async def gen():
            for chunk in chunks:
                yield chunk

        return gen()

    return _stream


@pytest.fixture
def mock_channel(mocker):
    """Create a mock StreamChannel."""
    return mocker.MagicMock()
