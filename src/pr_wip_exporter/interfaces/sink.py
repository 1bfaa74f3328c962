"""Abstract interface for the metrics sink the publisher writes to."""

from collections.abc import Mapping
from typing import Protocol


class MetricsSink(Protocol):
    """Destination for published pull request counts.

    Implementations must make each call visible to readers atomically;
    ``set_gauges`` must not expose a partially applied mapping.
    """

    def set_gauge(self, label: str, value: int) -> None:
        """
        Set the count for one state label.

        Args:
            label: State label ("draft", "approved", "overdue", "commented")
            value: Non-negative count
        """
        ...

    def set_gauges(self, values: Mapping[str, int]) -> None:
        """
        Set the counts for several state labels in one update.

        Args:
            values: Mapping of state label to non-negative count
        """
        ...
