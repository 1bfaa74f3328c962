"""Tests for async utility functions."""

from __future__ import annotations

import asyncio
import time

from pr_wip_exporter.utils.async_helpers import (
    CancellationToken,
    ConfigurationError,
    ExporterError,
    FetchError,
)


class TestCustomExceptions:
    """Test custom exception classes."""

    def test_exporter_error_base(self) -> None:
        """Test ExporterError is the base exception."""
        error = ExporterError("base error")
        assert str(error) == "base error"
        assert isinstance(error, Exception)

    def test_configuration_error(self) -> None:
        """Test ConfigurationError inherits from ExporterError."""
        assert isinstance(ConfigurationError("missing"), ExporterError)

    def test_fetch_error_with_status_code(self) -> None:
        """Test FetchError carries the HTTP status."""
        error = FetchError("bad gateway", status_code=502)
        assert str(error) == "bad gateway"
        assert error.status_code == 502
        assert isinstance(error, ExporterError)

    def test_fetch_error_without_status_code(self) -> None:
        """Test FetchError without a status."""
        assert FetchError("connection refused").status_code is None


class TestCancellationToken:
    """Test cancellation token functionality."""

    def test_initial_state(self) -> None:
        """Test cancellation token initial state."""
        token = CancellationToken()
        assert not token.is_cancelled

    def test_cancel(self) -> None:
        """Test cancelling the token."""
        token = CancellationToken()
        token.cancel()
        assert token.is_cancelled

    async def test_sleep_runs_full_duration(self) -> None:
        """Test sleep returns False when not cancelled."""
        token = CancellationToken()

        start = time.monotonic()
        cancelled = await token.sleep(0.02)

        assert cancelled is False
        assert time.monotonic() - start >= 0.015

    async def test_sleep_interrupted_by_cancel(self) -> None:
        """Test cancel() cuts a long sleep short."""
        token = CancellationToken()
        asyncio.get_running_loop().call_later(0.01, token.cancel)

        start = time.monotonic()
        cancelled = await token.sleep(60)

        assert cancelled is True
        assert time.monotonic() - start < 5

    async def test_sleep_after_cancel_returns_immediately(self) -> None:
        """Test sleeping on a cancelled token does not wait."""
        token = CancellationToken()
        token.cancel()

        assert await asyncio.wait_for(token.sleep(60), timeout=1.0) is True
