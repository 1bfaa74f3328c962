"""Async utilities and the exporter's exception hierarchy.

This module provides:
- Custom exceptions for error handling
- A cancellation token with an interruptible wait, used to pace the
  refresh loop

See DESIGN.md for the error handling strategy.
"""

from __future__ import annotations

import asyncio
import contextlib


# =============================================================================
# Custom Exceptions
# =============================================================================


class ExporterError(Exception):
    """Base exception for all exporter errors."""


class ConfigurationError(ExporterError):
    """Configuration is missing or invalid. Fatal at startup."""


class FetchError(ExporterError):
    """Fetching pull requests from upstream failed.

    Attributes:
        status_code: HTTP status code of the failing response, if any.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


# =============================================================================
# Cancellation Utilities
# =============================================================================


class CancellationToken:
    """Token for cooperative cancellation of async operations.

    Example:
        token = CancellationToken()

        async def worker(token: CancellationToken):
            while not token.is_cancelled:
                await do_work()
                await token.sleep(600)

        # Cancel from elsewhere
        token.cancel()
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._event = asyncio.Event()

    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation has been requested."""
        return self._cancelled

    def cancel(self) -> None:
        """Request cancellation."""
        self._cancelled = True
        self._event.set()

    async def sleep(self, seconds: float) -> bool:
        """Sleep for ``seconds`` unless cancelled first.

        Args:
            seconds: Maximum time to sleep.

        Returns:
            True if the sleep was cut short by cancellation, False if the
            full duration elapsed.
        """
        if self._cancelled:
            return True

        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        return self._cancelled
