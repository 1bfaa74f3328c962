"""Shared test fixtures for the PR WIP Exporter."""

from collections.abc import Callable, Iterator
from datetime import datetime
from pathlib import Path

import pytest
from factories import FAKE_TOKEN, NOW, make_pr

from pr_wip_exporter.models.pull_request import PullRequest
from pr_wip_exporter.utils.metrics import ExporterMetrics


@pytest.fixture(autouse=True)
def reset_metrics() -> Iterator[None]:
    """Give every test a fresh global metrics registry."""
    ExporterMetrics.reset_instance()
    yield
    ExporterMetrics.reset_instance()


@pytest.fixture
def now() -> datetime:
    """Fixed reference instant for classification."""
    return NOW


@pytest.fixture
def github_token(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> str:
    """Set a fake GITHUB_TOKEN in a clean working directory."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("GITHUB_TOKEN", FAKE_TOKEN)
    return FAKE_TOKEN


@pytest.fixture
def no_github_token(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Remove GITHUB_TOKEN from the environment and any .env file lookup."""
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("PR_WIP_GITHUB_TOKEN", raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def pr_factory() -> Callable[..., PullRequest]:
    """Return the pull request builder."""
    return make_pr
