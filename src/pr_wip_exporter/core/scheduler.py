"""Refresh loop: fetch, classify and publish on a fixed interval.

The loop runs its first cycle immediately and then waits the full interval
after each cycle, whether it succeeded or failed. A failed fetch skips
classification and publishing, so the previously published gauge values
stay in place until a later cycle succeeds.
"""

from __future__ import annotations

import contextlib
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from pr_wip_exporter.core.classifier import classify
from pr_wip_exporter.utils.async_helpers import CancellationToken, FetchError
from pr_wip_exporter.utils.logging import LogEventNames
from pr_wip_exporter.utils.metrics import Timer

if TYPE_CHECKING:
    from pr_wip_exporter.core.publisher import MetricsPublisher
    from pr_wip_exporter.interfaces.source import PullRequestSource
    from pr_wip_exporter.models.report import WipReport
    from pr_wip_exporter.utils.metrics import ExporterMetrics

log = structlog.get_logger()


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


class RefreshScheduler:
    """Periodically refreshes the published pull request metrics.

    Example:
        scheduler = RefreshScheduler(fetcher, publisher, "gitpod-io", "gitpod")
        task = asyncio.create_task(scheduler.run())
        ...
        scheduler.stop()
        await task
    """

    DEFAULT_INTERVAL = 600.0

    def __init__(
        self,
        source: PullRequestSource,
        publisher: MetricsPublisher,
        owner: str,
        name: str,
        interval: float = DEFAULT_INTERVAL,
        clock: Callable[[], datetime] = utc_now,
        metrics: ExporterMetrics | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            source: Where pull requests are fetched from
            publisher: Publishes each successful report
            owner: Repository owner
            name: Repository name
            interval: Seconds to wait after each cycle
            clock: Returns "now" for classification
            metrics: Registry for refresh counters; none recorded if None
        """
        self._source = source
        self._publisher = publisher
        self._owner = owner
        self._name = name
        self._interval = interval
        self._clock = clock
        self._metrics = metrics
        self._token = CancellationToken()

        self.last_success: datetime | None = None
        self.last_error: str | None = None
        self.consecutive_failures = 0
        self.cycles = 0

    @property
    def interval(self) -> float:
        """Seconds between the end of one cycle and the start of the next."""
        return self._interval

    @property
    def is_stopped(self) -> bool:
        """Return True once stop() has been called."""
        return self._token.is_cancelled

    async def run_once(self) -> WipReport | None:
        """Run one fetch, classify and publish cycle.

        Returns:
            The published report, or None if the fetch failed.
        """
        repo = f"{self._owner}/{self._name}"
        log.info(LogEventNames.REFRESH_STARTED, repo=repo)
        self.cycles += 1

        timer: contextlib.AbstractContextManager[object] = (
            Timer(self._metrics.refresh_duration) if self._metrics else contextlib.nullcontext()
        )
        with timer:
            try:
                prs = await self._source.fetch_open_pull_requests(self._owner, self._name)
            except FetchError as e:
                self._record_failure(str(e))
                log.error(
                    LogEventNames.FETCH_FAILED,
                    repo=repo,
                    error=str(e),
                    status_code=e.status_code,
                    consecutive_failures=self.consecutive_failures,
                )
                return None

            now = self._clock()
            report = classify(prs, now)
            self._publisher.publish(report)
            self._record_success(now)

        log.info(LogEventNames.REFRESH_COMPLETE, repo=repo, **report.counts())
        return report

    async def run(self) -> None:
        """Refresh until stop() is called.

        Exceptions other than FetchError are logged and count as a failed
        cycle; they never end the loop.
        """
        while not self._token.is_cancelled:
            try:
                await self.run_once()
            except Exception as e:
                self._record_failure(str(e))
                log.exception(LogEventNames.REFRESH_CYCLE_ERROR, error=str(e))

            if await self._token.sleep(self._interval):
                break

        log.info(LogEventNames.SCHEDULER_STOPPED, cycles=self.cycles)

    def stop(self) -> None:
        """Stop the loop; an in-progress wait returns immediately."""
        self._token.cancel()

    def _record_success(self, now: datetime) -> None:
        self.last_success = now
        self.last_error = None
        self.consecutive_failures = 0
        if self._metrics:
            self._metrics.refresh_total.inc(labels={"result": "success"})
            self._metrics.last_success_timestamp.set(now.timestamp())

    def _record_failure(self, error: str) -> None:
        self.last_error = error
        self.consecutive_failures += 1
        if self._metrics:
            self._metrics.refresh_total.inc(labels={"result": "failure"})
