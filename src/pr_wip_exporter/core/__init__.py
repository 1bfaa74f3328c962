"""Core business logic components.

This module exports the main business logic:
- classify: Buckets pull requests by work-in-progress category
- MetricsPublisher: Writes report counts to the metrics sink
- RefreshScheduler: Runs fetch, classify and publish on an interval
- Exporter: Wires the scheduler and the metrics endpoint together
- print_report: Renders a report as aligned plain text
"""

from pr_wip_exporter.core.classifier import OVERDUE_THRESHOLD, classify
from pr_wip_exporter.core.exporter import Exporter, create_exporter
from pr_wip_exporter.core.printer import format_report, print_report
from pr_wip_exporter.core.publisher import MetricsPublisher
from pr_wip_exporter.core.scheduler import RefreshScheduler

__all__ = [
    "OVERDUE_THRESHOLD",
    "Exporter",
    "MetricsPublisher",
    "RefreshScheduler",
    "classify",
    "create_exporter",
    "format_report",
    "print_report",
]
