"""Classification of open pull requests into work-in-progress buckets.

The classifier is a pure function: it performs no I/O, never mutates its
input, and returns the same report for the same pull requests and ``now``.

Per pull request:
1. It is always open.
2. Drafts go to ``draft`` and are not classified further.
3. Otherwise the reviews are scanned once. Any APPROVED review marks the
   pull request approved. Every COMMENTED review appends it to ``commented``
   and may advance the time of the last comment.
4. The primary status is the first of: approved; overdue because it was
   never commented on and is older than the threshold; overdue because the
   last comment is older than the threshold; none.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

from pr_wip_exporter.models.pull_request import PullRequest, ReviewState
from pr_wip_exporter.models.report import WipReport

# Fixed review SLA, not configurable
OVERDUE_THRESHOLD = timedelta(hours=24)


def classify(prs: Sequence[PullRequest], now: datetime) -> WipReport:
    """Bucket pull requests by work-in-progress category.

    Args:
        prs: Open pull requests, in the order they were fetched.
        now: Reference instant for the overdue rule.

    Returns:
        A new WipReport whose buckets preserve input order.
    """
    open_: list[PullRequest] = []
    draft: list[PullRequest] = []
    approved: list[PullRequest] = []
    commented: list[PullRequest] = []
    overdue: list[PullRequest] = []

    for pr in prs:
        open_.append(pr)

        if pr.is_draft:
            draft.append(pr)
            continue

        is_approved = False
        last_comment: datetime | None = None
        for review in pr.reviews:
            if review.state == ReviewState.APPROVED:
                is_approved = True
            elif review.state == ReviewState.COMMENTED:
                # One entry per comment review, not per pull request
                commented.append(pr)
                if review.submitted_at is not None and (
                    last_comment is None or review.submitted_at > last_comment
                ):
                    last_comment = review.submitted_at

        if is_approved:
            approved.append(pr)
        elif last_comment is None:
            if now - pr.created_at > OVERDUE_THRESHOLD:
                overdue.append(pr)
        elif now - last_comment > OVERDUE_THRESHOLD:
            overdue.append(pr)

    return WipReport(
        open=tuple(open_),
        draft=tuple(draft),
        approved=tuple(approved),
        commented=tuple(commented),
        overdue_review=tuple(overdue),
    )
