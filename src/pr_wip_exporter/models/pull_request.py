"""Data models for pull requests and their reviews."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

# Upstream embeds at most this many reviews per pull request
MAX_REVIEWS = 100

GHOST_LOGIN = "ghost"


class ReviewState(StrEnum):
    """State of a pull request review.

    Only APPROVED and COMMENTED carry meaning for classification. Any state
    GitHub adds in the future parses as OTHER.
    """

    APPROVED = "APPROVED"
    COMMENTED = "COMMENTED"
    CHANGES_REQUESTED = "CHANGES_REQUESTED"
    DISMISSED = "DISMISSED"
    PENDING = "PENDING"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, value: str | None) -> ReviewState:
        """Parse an upstream state string, mapping unknown values to OTHER."""
        if not value:
            return cls.OTHER
        try:
            return cls(value.upper())
        except ValueError:
            return cls.OTHER


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a GitHub ISO 8601 timestamp into an aware UTC datetime.

    Args:
        value: Timestamp such as ``2024-01-15T10:00:00Z``, or None.

    Returns:
        The parsed datetime, or None if ``value`` is empty.

    Raises:
        ValueError: If the timestamp is malformed.
    """
    if not value:
        return None

    # GitHub uses ISO 8601 format with Z suffix
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


@dataclass(frozen=True)
class Review:
    """A single reviewer action on a pull request."""

    state: ReviewState
    submitted_at: datetime | None  # None until the review is submitted

    @classmethod
    def from_graphql(cls, node: dict[str, Any]) -> Review:
        """Build a Review from a GraphQL ``PullRequestReview`` node."""
        return cls(
            state=ReviewState.parse(node.get("state")),
            submitted_at=parse_timestamp(node.get("submittedAt")),
        )


@dataclass(frozen=True)
class PullRequest:
    """An open pull request with up to MAX_REVIEWS of its reviews.

    ``reviews`` keeps the order GitHub returned them in, which is not
    guaranteed to be chronological.
    """

    title: str
    author: str
    is_draft: bool
    created_at: datetime
    reviews: tuple[Review, ...] = ()
    number: int = 0
    url: str = ""
    total_reviews: int = 0

    @property
    def reviews_truncated(self) -> bool:
        """True if upstream holds more reviews than were embedded."""
        return self.total_reviews > len(self.reviews)

    @classmethod
    def from_graphql(cls, node: dict[str, Any]) -> PullRequest:
        """Build a PullRequest from a GraphQL ``PullRequest`` node.

        Args:
            node: One entry of ``pullRequests.nodes``.

        Returns:
            PullRequest instance.

        Raises:
            ValueError: If ``createdAt`` is malformed or ``totalCount`` is not numeric.
            KeyError: If the node has no ``createdAt`` field.
            TypeError: If ``totalCount`` is not a number.
        """
        created_at = parse_timestamp(node["createdAt"])
        if created_at is None:
            raise ValueError("Pull request node has an empty createdAt")

        # Deleted accounts come back as a null author
        author_data = node.get("author") or {}
        author = author_data.get("login") or GHOST_LOGIN

        reviews_data = node.get("reviews") or {}
        review_nodes = reviews_data.get("nodes") or []
        reviews = tuple(Review.from_graphql(r) for r in review_nodes[:MAX_REVIEWS])

        return cls(
            title=node.get("title") or "",
            author=author,
            is_draft=bool(node.get("isDraft", False)),
            created_at=created_at,
            reviews=reviews,
            number=node.get("number") or 0,
            url=node.get("url") or "",
            # totalCount may be null; fall back to what was embedded
            total_reviews=int(reviews_data.get("totalCount") or len(reviews)),
        )
