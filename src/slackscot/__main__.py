"""Entry point for running a slackscot bot.

This module provides the main entry point for a slackscot instance.
It handles:
- Configuration loading
- Logging setup with secret sanitization
- Bot assembly with the bundled plugins
- Running against the Slack adapter until shutdown
"""

import argparse
import asyncio
import sys
from pathlib import Path

import structlog

from slackscot._version import __version__
from slackscot.errors import ConfigurationError

log = structlog.get_logger()

DEFAULT_BOT_NAME = "slackscot"


def setup_logging(debug: bool = False, log_format: str = "console") -> None:
    """Configure structured logging before the configuration is loaded.

    Args:
        debug: Enable debug logging if True
        log_format: Output format ("json" or "console")
    """
    from slackscot.utils.logging import LogFormat, LogLevel, configure_logging

    configure_logging(
        level=LogLevel.DEBUG if debug else LogLevel.INFO,
        log_format=LogFormat(log_format.lower()),
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="slackscot",
        description="slackscot - a Slack bot engine with pluggable actions",
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
        default=Path("config/config.yaml"),
        help="Path to configuration file (default: config/config.yaml)",
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
        help="Load the configuration and assemble the bot without connecting",
    )

    parser.add_argument(
        "--format",
        choices=["json", "console"],
        help="Log output format, overriding the configured one (default: console)",
    )

    parser.add_argument(
        "--name",
        default=DEFAULT_BOT_NAME,
        help=f"Name the bot introduces itself with (default: {DEFAULT_BOT_NAME})",
    )

    return parser.parse_args(argv)


async def run_bot(
    config_path: Path,
    name: str,
    debug: bool = False,
    dry_run: bool = False,
    log_format: str | None = None,
) -> int:
    """Load the configuration, assemble the bot and run it.

    A ``log_format`` given on the command line wins over the configured one.

    Returns:
        Exit code (0 on a clean stop, 1 on configuration error or rejected credentials)
    """
    log.info("starting_slackscot", name=name, version=__version__, config_path=str(config_path))

    try:
        from slackscot.config.loader import load_config
        from slackscot.utils.logging import configure_logging
        from slackscot.utils.security import mask_config_value

        config = load_config(config_path)
        if debug:
            config = config.model_copy(update={"debug": True})

        configure_logging(
            level="DEBUG" if config.debug else config.logging.level,
            log_format=log_format or config.logging.format,
            file_path=config.logging.file.path if config.logging.file.enabled else None,
            file_enabled=config.logging.file.enabled,
        )
        log.info("configuration_loaded", token=mask_config_value("token", config.token))

        from slackscot.adapters.chat.slack import SlackAdapter
        from slackscot.core.builder import BotBuilder
        from slackscot.plugins import (
            OH_MONDAY_PLUGIN_NAME,
            new_karma,
            new_oh_monday,
            new_versioner,
        )
        from slackscot.store import InMemoryStore

        builder = (
            BotBuilder(name, config)
            .with_plugin(new_versioner(name, __version__))
            .with_plugin_factory(lambda: new_karma(InMemoryStore("karma")))
        )
        if OH_MONDAY_PLUGIN_NAME in config.plugins:
            builder.with_configurable_plugin(OH_MONDAY_PLUGIN_NAME, new_oh_monday)

        adapter = SlackAdapter(config)
        bot = builder.build(
            adapter,
            adapter,
            users=adapter,
            emoji_reactor=adapter,
            uploader=adapter,
            real_time_sender=adapter,
        )

        if dry_run:
            log.info("dry_run_mode_config_valid", plugins=[p.name for p in builder.plugins])
            return 0

        await bot.run()

        if bot.invalid_auth:
            log.error("credentials_rejected")
            return 1
        return 0

    except FileNotFoundError as e:
        log.error("configuration_file_not_found", path=str(config_path), error=str(e))
        return 1
    except (ConfigurationError, ValueError) as e:
        log.error("configuration_invalid", error=str(e))
        return 1
    except Exception as e:
        log.exception("fatal_error", error=str(e))
        return 1


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    setup_logging(debug=args.debug, log_format=args.format or "console")

    try:
        return asyncio.run(
            run_bot(args.config, args.name, args.debug, args.dry_run, log_format=args.format)
        )
    except KeyboardInterrupt:
        log.info("shutting_down_gracefully")
        return 0


if __name__ == "__main__":
    sys.exit(main())
