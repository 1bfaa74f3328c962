"""Abstract interface for pull request sources."""

from typing import Protocol

from ..models.pull_request import PullRequest


class PullRequestSource(Protocol):
    """Abstract interface for fetching open pull requests.

    This protocol defines the contract the refresh scheduler relies on.
    The GitHub GraphQL fetcher is the only production implementation.
    """

    async def fetch_open_pull_requests(self, owner: str, name: str) -> list[PullRequest]:
        """
        Fetch every currently open pull request of a repository.

        Args:
            owner: Repository owner (user or organization login)
            name: Repository name

        Returns:
            All open pull requests, each with up to 100 reviews

        Raises:
            FetchError: If any request fails. No partial results are returned.
        """
        ...

    async def check_auth(self) -> str:
        """
        Verify the credential against the upstream API.

        Returns:
            Login of the authenticated user

        Raises:
            FetchError: If the request fails or the credential is rejected
        """
        ...
