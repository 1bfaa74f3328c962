"""Concrete implementations of provider interfaces."""

from .github import GitHubPullRequestFetcher

__all__ = ["GitHubPullRequestFetcher"]
