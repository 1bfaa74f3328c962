"""Plain-text rendering of a WIP report."""

from __future__ import annotations

import sys
from typing import TextIO

from pr_wip_exporter.models.report import WipReport

MIN_LABEL_WIDTH = 10
PADDING = 4


def format_report(report: WipReport) -> str:
    """Render bucket sizes as aligned ``Label: count`` lines."""
    rows = [
        ("Open:", len(report.open)),
        ("Draft:", len(report.draft)),
        ("Approved:", len(report.approved)),
        ("Commented:", len(report.commented)),
        ("Overdue:", len(report.overdue_review)),
    ]
    width = max(MIN_LABEL_WIDTH, *(len(label) for label, _ in rows)) + PADDING
    return "".join(f"{label.ljust(width)}{count}\n" for label, count in rows)


def print_report(report: WipReport, out: TextIO | None = None) -> None:
    """Write the rendered report to ``out`` (stdout by default)."""
    stream = out if out is not None else sys.stdout
    stream.write(format_report(report))
    stream.flush()
