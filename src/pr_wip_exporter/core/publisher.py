"""Publishes WIP report counts to a metrics sink."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from pr_wip_exporter.utils.logging import LogEventNames

if TYPE_CHECKING:
    from pr_wip_exporter.interfaces.sink import MetricsSink
    from pr_wip_exporter.models.report import WipReport

log = structlog.get_logger()


class MetricsPublisher:
    """Maps a WipReport onto the pull request state gauge.

    The sink is passed in rather than looked up so tests and alternative
    registries can be swapped in.

    Example:
        publisher = MetricsPublisher(get_metrics())
        publisher.publish(classify(prs, now))
    """

    def __init__(self, sink: MetricsSink) -> None:
        self._sink = sink

    @staticmethod
    def gauge_values(report: WipReport) -> dict[str, int]:
        """Return the gauge value for each state label."""
        return {
            "draft": len(report.draft),
            "approved": len(report.approved),
            "overdue": len(report.overdue_review),
            "commented": len(report.commented),
        }

    def publish(self, report: WipReport) -> None:
        """Overwrite all four state gauges from ``report`` in one update."""
        values = self.gauge_values(report)
        self._sink.set_gauges(values)
        log.info(LogEventNames.METRICS_PUBLISHED, open=len(report.open), **values)
