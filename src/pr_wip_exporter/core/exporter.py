"""Exporter orchestrator that wires and runs all components.

This module implements the Exporter class that serves as the main entry
point for the service. It:
- Builds the fetcher, publisher, scheduler and metrics server
- Runs the refresh loop and the HTTP server side by side on one event loop
- Handles graceful shutdown on signals (SIGTERM, SIGINT)
"""

from __future__ import annotations

import asyncio
import contextlib
import signal
from typing import TYPE_CHECKING

import structlog

from pr_wip_exporter.adapters.github import GitHubPullRequestFetcher
from pr_wip_exporter.core.publisher import MetricsPublisher
from pr_wip_exporter.core.scheduler import RefreshScheduler
from pr_wip_exporter.utils.health import HealthChecker
from pr_wip_exporter.utils.logging import LogEventNames
from pr_wip_exporter.utils.metrics import get_metrics
from pr_wip_exporter.utils.server import MetricsServer, create_app

if TYPE_CHECKING:
    from pr_wip_exporter.config.schema import ExporterConfig
    from pr_wip_exporter.utils.metrics import ExporterMetrics

log = structlog.get_logger()


class Exporter:
    """Main orchestrator for the refresh loop and the metrics endpoint.

    The scheduler and the server are two independent tasks. They share
    nothing but the metrics registry: the scheduler writes the gauges, the
    server reads them on each scrape.

    Example:
        exporter = Exporter(config, fetcher)
        await exporter.start()  # Blocks until shutdown signal
    """

    def __init__(
        self,
        config: ExporterConfig,
        fetcher: GitHubPullRequestFetcher,
        metrics: ExporterMetrics | None = None,
        server: MetricsServer | None = None,
    ) -> None:
        """Initialize the Exporter.

        Args:
            config: Application configuration
            fetcher: Pull request source
            metrics: Registry to publish into (defaults to the global one)
            server: Metrics server (built from config if None)
        """
        self._config = config
        self._fetcher = fetcher
        self._metrics = metrics or get_metrics()

        self._publisher = MetricsPublisher(self._metrics)
        self._scheduler = RefreshScheduler(
            fetcher,
            self._publisher,
            config.owner,
            config.name,
            interval=config.refresh.interval,
            metrics=self._metrics,
        )
        self._health = HealthChecker(config, fetcher, self._scheduler)
        self._server = server or MetricsServer(
            create_app(self._metrics, self._health),
            host=config.server.host,
            port=config.server.port,
        )

        self._running = False
        self._scheduler_task: asyncio.Task[None] | None = None
        self._shutdown_event: asyncio.Event | None = None

    @property
    def is_running(self) -> bool:
        """Return True if the exporter is currently running."""
        return self._running

    @property
    def scheduler(self) -> RefreshScheduler:
        """The refresh scheduler."""
        return self._scheduler

    async def start(self) -> None:
        """Start serving and refreshing; block until stop() is called."""
        if self._running:
            log.warning("exporter_already_running")
            return

        log.info(
            LogEventNames.EXPORTER_STARTING,
            repository=self._config.repository,
            interval=self._config.refresh.interval,
            port=self._config.server.port,
        )

        self._shutdown_event = asyncio.Event()
        try:
            await self._server.start()
            self._scheduler_task = asyncio.create_task(
                self._scheduler.run(), name="refresh_scheduler"
            )
            self._setup_signal_handlers()
            self._running = True
            log.info(LogEventNames.EXPORTER_STARTED)

            await self._shutdown_event.wait()
        finally:
            await self._cleanup()

    async def stop(self) -> None:
        """Request a graceful shutdown."""
        if not self._running:
            log.warning("exporter_not_running")
            return

        log.info(LogEventNames.EXPORTER_STOPPING)
        if self._shutdown_event:
            self._shutdown_event.set()

    async def _cleanup(self) -> None:
        """Stop the scheduler and server and release the HTTP client."""
        self._scheduler.stop()
        if self._scheduler_task and not self._scheduler_task.done():
            try:
                await asyncio.wait_for(
                    self._scheduler_task,
                    timeout=self._config.refresh.request_timeout,
                )
            except TimeoutError:
                self._scheduler_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._scheduler_task

        await self._server.stop()
        await self._fetcher.aclose()
        self._remove_signal_handlers()

        self._running = False
        log.info(
            LogEventNames.EXPORTER_STOPPED,
            cycles=self._scheduler.cycles,
        )

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(
                sig,
                lambda s: asyncio.create_task(self._handle_signal(s)),
                sig,
            )
            log.debug("signal_handler_registered", signal=sig.name)

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(sig)

    async def _handle_signal(self, sig: signal.Signals) -> None:
        """Handle shutdown signal."""
        log.info("received_signal", signal=sig.name)
        await self.stop()


def create_exporter(config: ExporterConfig) -> Exporter:
    """Factory function to create an Exporter with its GitHub fetcher.

    Args:
        config: Application configuration

    Returns:
        Configured Exporter instance
    """
    fetcher = GitHubPullRequestFetcher(
        config.github_token.get_secret_value(),
        url=config.graphql_url,
        timeout=config.refresh.request_timeout,
    )
    return Exporter(config, fetcher)
