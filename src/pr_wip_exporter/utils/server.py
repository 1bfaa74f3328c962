"""HTTP endpoint serving the Prometheus metrics text.

Routes:
- ``GET /metrics``: Prometheus text exposition of the registry
- ``GET /healthz``: JSON health report (503 when unhealthy)

``MetricsServer`` runs uvicorn inside the caller's event loop so the server
and the refresh loop share one loop and one registry. It binds the listening
socket itself, so an address already in use surfaces as ``OSError`` from
``start()``.
"""

from __future__ import annotations

import asyncio
import contextlib
import socket
from collections.abc import Iterator
from typing import TYPE_CHECKING

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse, PlainTextResponse

from pr_wip_exporter.utils.health import HealthStatus
from pr_wip_exporter.utils.logging import LogEventNames

if TYPE_CHECKING:
    from pr_wip_exporter.utils.health import HealthChecker
    from pr_wip_exporter.utils.metrics import ExporterMetrics

log = structlog.get_logger()

METRICS_PATH = "/metrics"
HEALTH_PATH = "/healthz"
PROMETHEUS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"


def create_app(metrics: ExporterMetrics, health: HealthChecker | None = None) -> FastAPI:
    """Create the FastAPI application exposing the registry.

    Args:
        metrics: Registry rendered on every scrape
        health: Health checker for /healthz; the route reports healthy
            if None

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="PR WIP Exporter",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.get(METRICS_PATH)
    async def scrape() -> PlainTextResponse:
        return PlainTextResponse(
            metrics.to_prometheus_format(),
            media_type=PROMETHEUS_CONTENT_TYPE,
        )

    @app.get(HEALTH_PATH)
    async def healthz() -> JSONResponse:
        if health is None:
            return JSONResponse({"healthy": True, "status": HealthStatus.HEALTHY.value})

        report = await health.run_local_checks()
        status_code = 503 if report.status == HealthStatus.UNHEALTHY else 200
        return JSONResponse(report.to_dict(), status_code=status_code)

    return app


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the exporter."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


def bind_socket(host: str, port: int) -> socket.socket:
    """Create a listening-ready TCP socket bound to ``host:port``.

    Raises:
        OSError: If the address cannot be bound, e.g. it is already in use.
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    sock.set_inheritable(True)
    return sock


class MetricsServer:
    """Runs the metrics app with uvicorn as an asyncio task.

    Example:
        server = MetricsServer(create_app(get_metrics()), port=9500)
        await server.start()
        ...
        await server.stop()
    """

    def __init__(self, app: FastAPI, host: str = "0.0.0.0", port: int = 9500) -> None:  # noqa: S104
        self._host = host
        self._port = port
        self._server = _EmbeddedServer(
            uvicorn.Config(
                app,
                host=host,
                port=port,
                log_config=None,
                access_log=False,
                lifespan="off",
            )
        )
        self._socket: socket.socket | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def started(self) -> bool:
        """Return True once uvicorn is accepting connections."""
        return self._server.started

    @property
    def port(self) -> int:
        """Bound port; differs from the configured one when that was 0."""
        if self._socket is None:
            return self._port
        return int(self._socket.getsockname()[1])

    async def _serve(self, sock: socket.socket) -> None:
        try:
            await self._server.serve(sockets=[sock])
        except SystemExit as e:
            # uvicorn exits the process on startup failures
            raise RuntimeError(
                f"Metrics server failed to start on {self._host}:{self._port} (exit {e.code})"
            ) from e

    async def start(self) -> None:
        """Bind, start serving in a background task and wait until ready.

        Raises:
            OSError: If the address cannot be bound.
            RuntimeError: If uvicorn stops before it is ready.
        """
        self._socket = bind_socket(self._host, self._port)
        self._task = asyncio.create_task(self._serve(self._socket), name="metrics_server")
        while not self._server.started:
            if self._task.done():
                task, self._task = self._task, None
                self._close_socket()
                # Re-raise whatever ended the task early
                task.result()
                raise RuntimeError(f"Metrics server failed to start on {self._host}:{self.port}")
            await asyncio.sleep(0.05)

        log.info(
            LogEventNames.SERVER_STARTED,
            address=f"{self._host}:{self.port}",
            path=METRICS_PATH,
        )

    async def stop(self) -> None:
        """Ask uvicorn to exit and wait for it."""
        if self._task is None:
            self._close_socket()
            return

        self._server.should_exit = True
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        self._close_socket()
        log.info(LogEventNames.SERVER_STOPPED)

    def _close_socket(self) -> None:
        if self._socket is not None:
            self._socket.close()
            self._socket = None
