"""Tests for the metrics publisher."""

from datetime import datetime
from unittest.mock import MagicMock

from factories import make_pr, review

from pr_wip_exporter.core.classifier import classify
from pr_wip_exporter.core.publisher import MetricsPublisher
from pr_wip_exporter.models.pull_request import ReviewState
from pr_wip_exporter.models.report import WipReport
from pr_wip_exporter.utils.metrics import ExporterMetrics


class TestGaugeValues:
    """Tests for mapping a report onto gauge labels."""

    def test_maps_buckets_to_labels(self, now: datetime) -> None:
        """Test each bucket size lands on its state label."""
        prs = [
            make_pr(number=1, is_draft=True),
            make_pr(number=2, age_hours=30),
            make_pr(
                number=3,
                age_hours=5,
                reviews=(
                    review(ReviewState.COMMENTED, 4),
                    review(ReviewState.COMMENTED, 3),
                ),
            ),
        ]

        values = MetricsPublisher.gauge_values(classify(prs, now))

        assert values == {"draft": 1, "approved": 0, "overdue": 1, "commented": 2}

    def test_open_is_not_published(self) -> None:
        """Test there is no gauge for the open bucket."""
        report = WipReport(open=(make_pr(),))

        assert "open" not in MetricsPublisher.gauge_values(report)


class TestPublish:
    """Tests for publishing to a sink."""

    def test_sets_all_labels_in_one_call(self) -> None:
        """Test the four labels are written together."""
        sink = MagicMock()

        MetricsPublisher(sink).publish(WipReport())

        sink.set_gauges.assert_called_once_with(
            {"draft": 0, "approved": 0, "overdue": 0, "commented": 0}
        )

    def test_overwrites_previous_values(self, now: datetime) -> None:
        """Test a later report replaces rather than adds to gauge values."""
        metrics = ExporterMetrics()
        publisher = MetricsPublisher(metrics)

        publisher.publish(classify([make_pr(is_draft=True)] * 3, now))
        publisher.publish(classify([make_pr(is_draft=True)], now))

        assert metrics.pull_requests.get(labels={"state": "draft"}) == 1
