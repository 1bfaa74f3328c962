"""GitHub GraphQL adapter for fetching open pull requests.

This module implements the PullRequestSource protocol against GitHub's
GraphQL API using an ``httpx.AsyncClient``.

Pages of 100 open pull requests are requested in sequence, following the
``endCursor`` until ``hasNextPage`` is false. Each pull request embeds its
first 100 reviews; reviews are not paginated separately.

A failure on any page aborts the whole fetch with FetchError. Retrying is
left to the caller's next refresh.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from ..models.pull_request import PullRequest
from ..utils.async_helpers import FetchError
from ..utils.logging import LogEventNames
from ..utils.security import SecretRedactor, validate_repository

log = structlog.get_logger()

GRAPHQL_URL = "https://api.github.com/graphql"

OPEN_PULL_REQUESTS_QUERY = """
query OpenPullRequests($owner: String!, $name: String!, $cursor: String) {
  repository(owner: $owner, name: $name) {
    pullRequests(states: OPEN, first: 100, after: $cursor) {
      nodes {
        number
        url
        title
        author { login }
        isDraft
        createdAt
        reviews(first: 100) {
          totalCount
          nodes {
            state
            submittedAt
          }
        }
      }
      pageInfo {
        endCursor
        hasNextPage
      }
    }
  }
}
"""

VIEWER_QUERY = "query { viewer { login } }"


class GitHubPullRequestFetcher:
    """Fetches open pull requests through the GitHub GraphQL API.

    Example:
        async with GitHubPullRequestFetcher(token) as fetcher:
            prs = await fetcher.fetch_open_pull_requests("gitpod-io", "gitpod")
    """

    def __init__(
        self,
        token: str,
        url: str = GRAPHQL_URL,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            token: GitHub token sent as a bearer credential.
            url: GraphQL endpoint.
            timeout: Per-request timeout in seconds. Ignored when ``client``
                is given.
            client: Pre-built client. The caller keeps ownership of it.
        """
        self._url = url
        self._headers = {
            "Authorization": f"bearer {token}",
            "Accept": "application/vnd.github+json",
        }
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._redactor = SecretRedactor(known_secrets=[token])

    async def __aenter__(self) -> GitHubPullRequestFetcher:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this fetcher created it."""
        if self._owns_client:
            await self._client.aclose()

    async def _query(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Execute one GraphQL request and return its ``data`` object.

        Raises:
            FetchError: On transport failure, non-2xx status, GraphQL errors
                or a malformed body.
        """
        payload: dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables

        try:
            resp = await self._client.post(self._url, json=payload, headers=self._headers)
        except httpx.HTTPError as e:
            raise FetchError(self._redactor.redact(f"Cannot query GitHub: {e}")) from e

        if resp.status_code >= 400:
            raise FetchError(
                f"GitHub returned HTTP {resp.status_code}",
                status_code=resp.status_code,
            )

        try:
            body = resp.json()
        except ValueError as e:
            raise FetchError(f"GitHub returned invalid JSON: {e}") from e

        if not isinstance(body, dict):
            raise FetchError("GitHub returned an unexpected response body")

        if body.get("errors"):
            error_msg = "; ".join(
                e.get("message", str(e)) if isinstance(e, dict) else str(e)
                for e in body["errors"]
            )
            raise FetchError(self._redactor.redact(f"GraphQL errors: {error_msg}"))

        data = body.get("data")
        if not isinstance(data, dict):
            raise FetchError("GitHub response has no data")
        return data

    async def fetch_open_pull_requests(self, owner: str, name: str) -> list[PullRequest]:
        """Fetch every open pull request of ``owner/name``.

        Args:
            owner: Repository owner.
            name: Repository name.

        Returns:
            All open pull requests in upstream order.

        Raises:
            ValueError: If ``owner/name`` is not a valid repository name.
            FetchError: If any page fails. No partial results are returned.
        """
        repo = f"{owner}/{name}"
        if not validate_repository(owner, name):
            raise ValueError(f"Invalid repository name: {repo}")

        variables: dict[str, Any] = {"owner": owner, "name": name, "cursor": None}
        pull_requests: list[PullRequest] = []
        page = 0

        while True:
            data = await self._query(OPEN_PULL_REQUESTS_QUERY, variables)
            page += 1

            repository = data.get("repository")
            if repository is None:
                raise FetchError(f"Repository {repo} not found")

            try:
                connection = repository["pullRequests"]
                nodes = connection["nodes"] or []
                page_info = connection["pageInfo"]
                has_next_page = bool(page_info["hasNextPage"])
                cursor = page_info.get("endCursor")
                batch = [PullRequest.from_graphql(node) for node in nodes]
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                raise FetchError(f"Malformed pull request page: {e}") from e

            for pr in batch:
                if pr.reviews_truncated:
                    log.debug(
                        LogEventNames.REVIEWS_TRUNCATED,
                        repo=repo,
                        number=pr.number,
                        total_reviews=pr.total_reviews,
                        embedded_reviews=len(pr.reviews),
                    )
            pull_requests.extend(batch)

            log.debug(
                LogEventNames.FETCH_PAGE,
                repo=repo,
                page=page,
                page_size=len(batch),
                total=len(pull_requests),
            )

            if not has_next_page:
                break
            if not cursor or cursor == variables["cursor"]:
                raise FetchError(f"Pagination cursor did not advance on page {page}")
            variables["cursor"] = cursor

        return pull_requests

    async def check_auth(self) -> str:
        """Return the login the token authenticates as.

        Raises:
            FetchError: If the request fails or the token is rejected.
        """
        data = await self._query(VIEWER_QUERY)
        viewer = data.get("viewer") or {}
        login = viewer.get("login")
        if not login:
            raise FetchError("GitHub did not return a viewer login")
        return str(login)
