"""Work-in-progress report produced by the classifier."""

from __future__ import annotations

from dataclasses import dataclass

from .pull_request import PullRequest


@dataclass(frozen=True)
class WipReport:
    """Pull requests bucketed by work-in-progress category.

    Buckets hold references to the classifier's input objects, not copies.
    Each pull request is in ``open`` and in at most one of ``draft``,
    ``approved`` and ``overdue_review``. ``commented`` is independent of
    that primary status and holds one entry per COMMENTED review.
    """

    open: tuple[PullRequest, ...] = ()
    draft: tuple[PullRequest, ...] = ()
    approved: tuple[PullRequest, ...] = ()
    commented: tuple[PullRequest, ...] = ()
    overdue_review: tuple[PullRequest, ...] = ()

    def counts(self) -> dict[str, int]:
        """Return the size of each bucket keyed by bucket name."""
        return {
            "open": len(self.open),
            "draft": len(self.draft),
            "approved": len(self.approved),
            "commented": len(self.commented),
            "overdue_review": len(self.overdue_review),
        }
