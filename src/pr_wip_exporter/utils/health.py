"""Health check utilities for monitoring service health.

This module provides health checks for the exporter:
- Configuration sanity
- GitHub API authentication
- Freshness of the last successful refresh
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import structlog

from pr_wip_exporter.utils.async_helpers import FetchError
from pr_wip_exporter.utils.logging import LogEventNames

if TYPE_CHECKING:
    from pr_wip_exporter.config.schema import ExporterConfig
    from pr_wip_exporter.core.scheduler import RefreshScheduler
    from pr_wip_exporter.interfaces.source import PullRequestSource

log = structlog.get_logger()


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


@dataclass
class CheckResult:
    """Result of a single health check."""

    name: str
    status: HealthStatus
    message: str
    latency_ms: float | None = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class HealthReport:
    """Overall health report."""

    healthy: bool
    status: HealthStatus
    timestamp: datetime
    checks: list[CheckResult]
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "healthy": self.healthy,
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
            "checks": [
                {
                    "name": c.name,
                    "status": c.status.value,
                    "message": c.message,
                    "latency_ms": c.latency_ms,
                    "details": c.details,
                }
                for c in self.checks
            ],
            "details": self.details,
        }


def summarize(checks: list[CheckResult], timestamp: datetime | None = None) -> HealthReport:
    """Combine individual check results into a HealthReport.

    Any UNHEALTHY check makes the report unhealthy; otherwise any non-HEALTHY
    check makes it DEGRADED (which still counts as healthy).
    """
    if all(c.status == HealthStatus.HEALTHY for c in checks):
        overall_status = HealthStatus.HEALTHY
        healthy = True
    elif any(c.status == HealthStatus.UNHEALTHY for c in checks):
        overall_status = HealthStatus.UNHEALTHY
        healthy = False
    else:
        overall_status = HealthStatus.DEGRADED
        healthy = True

    return HealthReport(
        healthy=healthy,
        status=overall_status,
        timestamp=timestamp or datetime.now(UTC),
        checks=checks,
        details={
            "total_checks": len(checks),
            "healthy_checks": sum(1 for c in checks if c.status == HealthStatus.HEALTHY),
            "degraded_checks": sum(1 for c in checks if c.status == HealthStatus.DEGRADED),
            "unhealthy_checks": sum(1 for c in checks if c.status == HealthStatus.UNHEALTHY),
        },
    )


class HealthChecker:
    """Performs health checks on the exporter and its upstream.

    Example:
        checker = HealthChecker(config, fetcher, scheduler)
        report = await checker.run_all_checks()
        if not report.healthy:
            print(report.to_dict())
    """

    def __init__(
        self,
        config: ExporterConfig,
        source: PullRequestSource | None = None,
        scheduler: RefreshScheduler | None = None,
    ) -> None:
        """Initialize the health checker.

        Args:
            config: Application configuration
            source: Pull request source used for the auth check
            scheduler: Refresh scheduler whose state is inspected
        """
        self._config = config
        self._source = source
        self._scheduler = scheduler

    async def run_all_checks(self) -> HealthReport:
        """Run every check, including the upstream auth check."""
        log.info(LogEventNames.HEALTH_CHECK_START)

        results = await asyncio.gather(
            self.check_config(),
            self.check_github_auth(),
            self.check_refresh(),
            return_exceptions=True,
        )

        checks: list[CheckResult] = []
        for result in results:
            if isinstance(result, BaseException):
                checks.append(
                    CheckResult(
                        name="unknown",
                        status=HealthStatus.UNHEALTHY,
                        message=f"Check failed with exception: {result}",
                    )
                )
            else:
                checks.append(result)

        report = summarize(checks)
        log.info(
            LogEventNames.HEALTH_CHECK_COMPLETE,
            healthy=report.healthy,
            status=report.status.value,
            checks_run=len(checks),
        )
        return report

    async def run_local_checks(self) -> HealthReport:
        """Run the checks that make no network calls, for the /healthz route."""
        return summarize([await self.check_config(), await self.check_refresh()])

    async def check_config(self) -> CheckResult:
        """Check configuration validity."""
        token = self._config.github_token.get_secret_value()
        if not token.strip():
            return CheckResult(
                name="config",
                status=HealthStatus.UNHEALTHY,
                message="GitHub token not configured",
            )

        return CheckResult(
            name="config",
            status=HealthStatus.HEALTHY,
            message="Configuration valid",
            details={
                "repository": self._config.repository,
                "refresh_interval": self._config.refresh.interval,
                "port": self._config.server.port,
            },
        )

    async def check_github_auth(self) -> CheckResult:
        """Check that the token is accepted by the GitHub API."""
        if self._source is None:
            return CheckResult(
                name="github_auth",
                status=HealthStatus.UNKNOWN,
                message="No pull request source configured",
            )

        start = time.monotonic()
        try:
            login = await self._source.check_auth()
        except FetchError as e:
            return CheckResult(
                name="github_auth",
                status=HealthStatus.UNHEALTHY,
                message=f"GitHub auth check failed: {e}",
                latency_ms=(time.monotonic() - start) * 1000,
            )

        return CheckResult(
            name="github_auth",
            status=HealthStatus.HEALTHY,
            message="GitHub token accepted",
            latency_ms=(time.monotonic() - start) * 1000,
            details={"login": login},
        )

    async def check_refresh(self) -> CheckResult:
        """Check how recently the published metrics were refreshed."""
        scheduler = self._scheduler
        if scheduler is None:
            return CheckResult(
                name="refresh",
                status=HealthStatus.HEALTHY,
                message="Refresh loop not running",
            )

        details: dict[str, Any] = {
            "last_success": scheduler.last_success.isoformat() if scheduler.last_success else None,
            "consecutive_failures": scheduler.consecutive_failures,
            "last_error": scheduler.last_error,
        }

        if scheduler.last_success is None:
            if scheduler.consecutive_failures:
                return CheckResult(
                    name="refresh",
                    status=HealthStatus.UNHEALTHY,
                    message="No refresh has succeeded yet",
                    details=details,
                )
            return CheckResult(
                name="refresh",
                status=HealthStatus.DEGRADED,
                message="First refresh has not completed",
                details=details,
            )

        max_age = timedelta(seconds=2 * scheduler.interval)
        age = datetime.now(UTC) - scheduler.last_success
        details["age_seconds"] = age.total_seconds()

        if scheduler.consecutive_failures or age > max_age:
            return CheckResult(
                name="refresh",
                status=HealthStatus.DEGRADED,
                message="Serving metrics from an earlier refresh",
                details=details,
            )

        return CheckResult(
            name="refresh",
            status=HealthStatus.HEALTHY,
            message="Metrics are fresh",
            details=details,
        )
