"""Tests for the command line entry point."""

import socket
from collections.abc import Iterator
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from factories import NOW, make_pr

from pr_wip_exporter.__main__ import main, parse_args, print_once, run_exporter
from pr_wip_exporter.utils.async_helpers import FetchError
from pr_wip_exporter.utils.logging import configure_logging

FETCHER_PATH = "pr_wip_exporter.adapters.github.GitHubPullRequestFetcher"


@pytest.fixture(autouse=True)
def stderr_logging() -> None:
    """Route log output to stderr so stdout holds only the report."""
    configure_logging()


@pytest.fixture
def fake_fetcher() -> Iterator[MagicMock]:
    """Patch the GitHub fetcher with an async context manager mock."""
    with patch(FETCHER_PATH) as mock_cls:
        instance = mock_cls.return_value
        instance.__aenter__.return_value = instance
        instance.fetch_open_pull_requests = AsyncMock(
            return_value=[
                make_pr(number=1, is_draft=True),
                make_pr(number=2, age_hours=2),
            ]
        )
        instance.check_auth = AsyncMock(return_value="octocat")
        yield instance


class TestParseArgs:
    """Tests for argument parsing."""

    def test_defaults(self) -> None:
        """Test the default arguments."""
        args = parse_args([])

        assert args.config is None
        assert args.debug is False
        assert args.format is None
        assert args.once is False
        assert args.health_check is False

    def test_once_and_health_check_are_exclusive(self) -> None:
        """Test the one-shot modes cannot be combined."""
        with pytest.raises(SystemExit):
            parse_args(["--once", "--health-check"])

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test --version prints and exits."""
        with pytest.raises(SystemExit) as exc_info:
            parse_args(["--version"])

        assert exc_info.value.code == 0
        assert "pr-wip-exporter" in capsys.readouterr().out


class TestRunExporter:
    """Tests for the run modes."""

    def test_missing_token_exits_nonzero(self, no_github_token: None) -> None:
        """Test startup fails fast without GITHUB_TOKEN."""
        assert main([]) == 1

    def test_missing_config_file(self, github_token: str) -> None:
        """Test a missing config file exits with an error."""
        assert main(["--config", "/nonexistent/config.yaml"]) == 1

    async def test_dry_run(self, github_token: str) -> None:
        """Test --dry-run validates and exits."""
        assert await run_exporter(dry_run=True) == 0

    async def test_dry_run_masks_token(
        self, github_token: str, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test --dry-run never logs the full token."""
        await run_exporter(dry_run=True)

        captured = capsys.readouterr()
        assert github_token not in captured.out + captured.err

    async def test_once_prints_report(
        self,
        github_token: str,
        fake_fetcher: MagicMock,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Test --once prints the classified report to stdout."""
        with patch("pr_wip_exporter.core.scheduler.utc_now", return_value=NOW):
            assert await run_exporter(once=True) == 0

        out = capsys.readouterr().out
        assert "Open:         2\n" in out
        assert "Draft:        1\n" in out
        assert "Overdue:      0\n" in out
        fake_fetcher.fetch_open_pull_requests.assert_awaited_once_with("gitpod-io", "gitpod")

    async def test_once_classifies_against_clock(
        self,
        github_token: str,
        fake_fetcher: MagicMock,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Test the report ages pull requests against the given clock."""
        from pr_wip_exporter.config.loader import load_config

        config = load_config()

        assert await print_once(config, clock=lambda: NOW) == 0
        assert "Overdue:      0\n" in capsys.readouterr().out

        assert await print_once(config, clock=lambda: NOW + timedelta(days=2)) == 0
        assert "Overdue:      1\n" in capsys.readouterr().out

    async def test_once_fetch_failure(
        self,
        github_token: str,
        fake_fetcher: MagicMock,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Test --once exits non-zero and prints nothing when the fetch fails."""
        fake_fetcher.fetch_open_pull_requests.side_effect = FetchError("down")

        assert await run_exporter(once=True) == 1
        assert capsys.readouterr().out == ""

    async def test_health_check_passes(self, github_token: str, fake_fetcher: MagicMock) -> None:
        """Test --health-check exits zero when GitHub accepts the token."""
        assert await run_exporter(health_check=True) == 0
        fake_fetcher.check_auth.assert_awaited_once()

    async def test_health_check_fails(self, github_token: str, fake_fetcher: MagicMock) -> None:
        """Test --health-check exits non-zero when the token is rejected."""
        fake_fetcher.check_auth.side_effect = FetchError("HTTP 401", status_code=401)

        assert await run_exporter(health_check=True) == 1

    async def test_port_in_use_exits_nonzero(
        self,
        github_token: str,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Test a metrics port already in use ends the run with exit code 1."""
        blocker = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        blocker.bind(("127.0.0.1", 0))
        blocker.listen()
        try:
            monkeypatch.setenv("PR_WIP_SERVER__HOST", "127.0.0.1")
            monkeypatch.setenv("PR_WIP_SERVER__PORT", str(blocker.getsockname()[1]))

            assert await run_exporter() == 1
        finally:
            blocker.close()

        assert "fatal_error" in capsys.readouterr().err

    async def test_runs_exporter(self, github_token: str) -> None:
        """Test the default mode starts the exporter."""
        exporter = MagicMock()
        exporter.start = AsyncMock()

        with patch(
            "pr_wip_exporter.core.exporter.create_exporter", return_value=exporter
        ) as factory:
            assert await run_exporter() == 0

        factory.assert_called_once()
        exporter.start.assert_awaited_once()
