"""Tests for pull request and report models."""

from datetime import UTC, datetime, timedelta

import pytest
from factories import graphql_pr_node, make_pr

from pr_wip_exporter.models.pull_request import (
    GHOST_LOGIN,
    MAX_REVIEWS,
    PullRequest,
    Review,
    ReviewState,
    parse_timestamp,
)
from pr_wip_exporter.models.report import WipReport


class TestReviewState:
    """Tests for review state parsing."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("APPROVED", ReviewState.APPROVED),
            ("commented", ReviewState.COMMENTED),
            ("CHANGES_REQUESTED", ReviewState.CHANGES_REQUESTED),
            ("DISMISSED", ReviewState.DISMISSED),
            ("PENDING", ReviewState.PENDING),
            ("SOMETHING_NEW", ReviewState.OTHER),
            ("", ReviewState.OTHER),
            (None, ReviewState.OTHER),
        ],
    )
    def test_parse(self, raw: str | None, expected: ReviewState) -> None:
        """Test known states parse and unknown ones map to OTHER."""
        assert ReviewState.parse(raw) == expected


class TestParseTimestamp:
    """Tests for GitHub timestamp parsing."""

    def test_z_suffix(self) -> None:
        """Test the Z suffix parses as UTC."""
        assert parse_timestamp("2024-01-15T10:00:00Z") == datetime(2024, 1, 15, 10, tzinfo=UTC)

    def test_offset_is_normalized_to_utc(self) -> None:
        """Test explicit offsets are converted to UTC."""
        parsed = parse_timestamp("2024-01-15T12:00:00+02:00")

        assert parsed == datetime(2024, 1, 15, 10, tzinfo=UTC)
        assert parsed is not None
        assert parsed.utcoffset() == timedelta(0)

    def test_naive_is_assumed_utc(self) -> None:
        """Test timestamps without an offset are treated as UTC."""
        parsed = parse_timestamp("2024-01-15T10:00:00")

        assert parsed is not None
        assert parsed.tzinfo is not None
        assert parsed == datetime(2024, 1, 15, 10, tzinfo=UTC)

    def test_empty(self) -> None:
        """Test None and empty strings give None."""
        assert parse_timestamp(None) is None
        assert parse_timestamp("") is None

    def test_malformed(self) -> None:
        """Test garbage raises ValueError."""
        with pytest.raises(ValueError):
            parse_timestamp("yesterday")


class TestPullRequestFromGraphql:
    """Tests for building pull requests from GraphQL nodes."""

    def test_basic_fields(self) -> None:
        """Test the node fields are mapped."""
        pr = PullRequest.from_graphql(
            graphql_pr_node(
                number=42,
                is_draft=True,
                reviews=[{"state": "COMMENTED", "submittedAt": "2024-06-01T11:00:00Z"}],
            )
        )

        assert pr.number == 42
        assert pr.title == "PR 42"
        assert pr.author == "octocat"
        assert pr.is_draft is True
        assert pr.created_at == datetime(2024, 6, 1, 10, tzinfo=UTC)
        assert pr.reviews == (
            Review(ReviewState.COMMENTED, datetime(2024, 6, 1, 11, tzinfo=UTC)),
        )
        assert pr.url.endswith("/pull/42")

    def test_ghost_author(self) -> None:
        """Test a null author becomes the ghost login."""
        pr = PullRequest.from_graphql(graphql_pr_node(author=None))

        assert pr.author == GHOST_LOGIN

    def test_review_without_submission_time(self) -> None:
        """Test pending reviews keep a None submission time."""
        pr = PullRequest.from_graphql(
            graphql_pr_node(reviews=[{"state": "PENDING", "submittedAt": None}])
        )

        assert pr.reviews[0].state == ReviewState.PENDING
        assert pr.reviews[0].submitted_at is None

    def test_reviews_truncated_to_maximum(self) -> None:
        """Test at most MAX_REVIEWS reviews are kept, in upstream order."""
        nodes = [
            {"state": "APPROVED" if i == 0 else "COMMENTED", "submittedAt": None}
            for i in range(MAX_REVIEWS + 5)
        ]

        pr = PullRequest.from_graphql(graphql_pr_node(reviews=nodes))

        assert len(pr.reviews) == MAX_REVIEWS
        assert pr.reviews[0].state == ReviewState.APPROVED
        assert pr.reviews_truncated is True

    def test_not_truncated(self) -> None:
        """Test a complete review list is not flagged."""
        pr = PullRequest.from_graphql(graphql_pr_node(reviews=[]))

        assert pr.total_reviews == 0
        assert pr.reviews_truncated is False

    def test_null_total_count(self) -> None:
        """Test a null totalCount falls back to the embedded review count."""
        node = graphql_pr_node(reviews=[{"state": "COMMENTED", "submittedAt": None}])
        node["reviews"]["totalCount"] = None

        pr = PullRequest.from_graphql(node)

        assert pr.total_reviews == 1
        assert pr.reviews_truncated is False

    def test_null_optional_fields(self) -> None:
        """Test null title, number and url become empty defaults."""
        node = graphql_pr_node()
        node.update(title=None, number=None, url=None)

        pr = PullRequest.from_graphql(node)

        assert pr.title == ""
        assert pr.number == 0
        assert pr.url == ""

    def test_missing_created_at(self) -> None:
        """Test a node without createdAt raises KeyError."""
        node = graphql_pr_node()
        del node["createdAt"]

        with pytest.raises(KeyError):
            PullRequest.from_graphql(node)

    def test_empty_created_at(self) -> None:
        """Test an empty createdAt raises ValueError."""
        with pytest.raises(ValueError, match="empty createdAt"):
            PullRequest.from_graphql(graphql_pr_node(created_at=""))

    def test_immutable(self) -> None:
        """Test pull requests are frozen."""
        pr = make_pr()

        with pytest.raises(AttributeError):
            pr.title = "changed"  # type: ignore[misc]


class TestWipReport:
    """Tests for the report model."""

    def test_counts(self) -> None:
        """Test counts reports every bucket size."""
        pr = make_pr()
        report = WipReport(open=(pr, pr), commented=(pr, pr, pr))

        assert report.counts() == {
            "open": 2,
            "draft": 0,
            "approved": 0,
            "commented": 3,
            "overdue_review": 0,
        }
