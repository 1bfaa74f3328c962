"""Protocol definitions for pluggable components."""

from .sink import MetricsSink
from .source import PullRequestSource

__all__ = ["MetricsSink", "PullRequestSource"]
