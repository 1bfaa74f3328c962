"""Data models and transfer objects."""

from .pull_request import MAX_REVIEWS, PullRequest, Review, ReviewState, parse_timestamp
from .report import WipReport

__all__ = [
    "MAX_REVIEWS",
    # Pull request models
    "PullRequest",
    "Review",
    "ReviewState",
    "parse_timestamp",
    # Report
    "WipReport",
]
