"""Entry point for running the PR WIP Exporter.

This module provides the main entry point for the exporter.
It handles:
- Configuration loading (fails fast without GITHUB_TOKEN)
- Logging setup with secret sanitization
- One-shot report printing
- Exporter lifecycle management
"""

import argparse
import asyncio
import sys
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from pr_wip_exporter._version import __version__
from pr_wip_exporter.utils.async_helpers import ConfigurationError, FetchError

if TYPE_CHECKING:
    from pr_wip_exporter.config.schema import ExporterConfig

log = structlog.get_logger()


def setup_logging(
    debug: bool = False,
    log_format: str = "json",
    file_path: Path | None = None,
    file_enabled: bool = False,
) -> None:
    """Configure structured logging with secret sanitization.

    Args:
        debug: Enable debug logging if True
        log_format: Output format ("json" or "console")
        file_path: Path to log file (if file logging enabled)
        file_enabled: Whether to enable file logging
    """
    from pr_wip_exporter.utils.logging import LogFormat, LogLevel, configure_logging

    level = LogLevel.DEBUG if debug else LogLevel.INFO

    configure_logging(
        level=level,
        log_format=LogFormat(log_format.lower()),
        file_path=file_path,
        file_enabled=file_enabled,
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        argv: Argument list (defaults to sys.argv[1:])

    Returns:
        Parsed argument namespace
    """
    parser = argparse.ArgumentParser(
        prog="pr-wip-exporter",
        description="Prometheus exporter for work-in-progress pull requests of gitpod-io/gitpod",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="Path to an optional YAML configuration file",
    )

    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate configuration and exit",
    )

    parser.add_argument(
        "--format",
        choices=["json", "console"],
        default=None,
        help="Log output format; overrides the configured format (default: json)",
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--health-check",
        action="store_true",
        help="Run health check and exit",
    )
    mode.add_argument(
        "--once",
        action="store_true",
        help="Fetch once, print the report to stdout and exit",
    )

    return parser.parse_args(argv)


async def print_once(
    config: "ExporterConfig",
    clock: Callable[[], datetime] | None = None,
) -> int:
    """Fetch the open pull requests once and print the classified report.

    Args:
        config: Exporter configuration
        clock: Returns the classification time; defaults to the current UTC time

    Returns:
        Exit code (0 for success, 1 when the fetch failed)
    """
    from pr_wip_exporter.adapters.github import GitHubPullRequestFetcher
    from pr_wip_exporter.core.classifier import classify
    from pr_wip_exporter.core.printer import print_report
    from pr_wip_exporter.core.scheduler import utc_now
    from pr_wip_exporter.utils.logging import LogEventNames

    async with GitHubPullRequestFetcher(
        config.github_token.get_secret_value(),
        url=config.graphql_url,
        timeout=config.refresh.request_timeout,
    ) as fetcher:
        try:
            prs = await fetcher.fetch_open_pull_requests(config.owner, config.name)
        except FetchError as e:
            log.error(LogEventNames.FETCH_FAILED, error=str(e), status_code=e.status_code)
            return 1

    print_report(classify(prs, (clock or utc_now)()))
    return 0


async def run_health_check(config: "ExporterConfig") -> int:
    """Run every health check, including GitHub authentication."""
    from pr_wip_exporter.adapters.github import GitHubPullRequestFetcher
    from pr_wip_exporter.utils.health import HealthChecker

    async with GitHubPullRequestFetcher(
        config.github_token.get_secret_value(),
        url=config.graphql_url,
        timeout=config.refresh.request_timeout,
    ) as fetcher:
        result = await HealthChecker(config, fetcher).run_all_checks()

    if result.healthy:
        log.info("health_check_passed", details=result.details)
        return 0

    log.error("health_check_failed", details=result.details)
    return 1


async def run_exporter(
    config_path: Path | None = None,
    dry_run: bool = False,
    health_check: bool = False,
    once: bool = False,
    debug: bool = False,
    log_format: str | None = None,
) -> int:
    """Run the PR WIP Exporter.

    Args:
        config_path: Optional path to configuration file
        dry_run: If True, only validate config without starting
        health_check: If True, run health check and exit
        once: If True, print a single report and exit
        debug: If True, keep debug logging regardless of the config
        log_format: Log output format overriding the config, if given

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    log.info(
        "starting_pr_wip_exporter",
        version=__version__,
        config_path=str(config_path) if config_path else None,
    )

    try:
        from pr_wip_exporter.config.loader import load_config

        config = load_config(config_path)
        log.info("configuration_loaded", repository=config.repository)

        # Reconfigure logging from config file settings
        from pr_wip_exporter.utils.logging import configure_logging

        configure_logging(
            level="DEBUG" if debug else config.logging.level,
            log_format=log_format or config.logging.format,
            file_path=config.logging.file.path if config.logging.file.enabled else None,
            file_enabled=config.logging.file.enabled,
            secrets=[config.github_token.get_secret_value()],
        )

        if dry_run:
            from pr_wip_exporter.utils.security import mask_secret

            log.info(
                "dry_run_mode_config_valid",
                repository=config.repository,
                github_token=mask_secret(config.github_token.get_secret_value()),
                port=config.server.port,
                refresh_interval=config.refresh.interval,
            )
            return 0

        if health_check:
            return await run_health_check(config)

        if once:
            return await print_once(config)

        from pr_wip_exporter.core.exporter import create_exporter

        exporter = create_exporter(config)
        await exporter.start()

        return 0

    except FileNotFoundError as e:
        log.error("configuration_file_not_found", path=str(config_path), error=str(e))
        return 1
    except ConfigurationError as e:
        log.error("configuration_invalid", error=str(e))
        return 1
    except Exception as e:
        log.exception("fatal_error", error=str(e))
        return 1


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    setup_logging(
        debug=args.debug,
        log_format=args.format or "json",
    )

    try:
        return asyncio.run(
            run_exporter(
                args.config,
                dry_run=args.dry_run,
                health_check=args.health_check,
                once=args.once,
                debug=args.debug,
                log_format=args.format,
            )
        )
    except KeyboardInterrupt:
        log.info("shutting_down_gracefully")
        return 0


if __name__ == "__main__":
    sys.exit(main())
