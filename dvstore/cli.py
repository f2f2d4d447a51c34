"""Command Line — `dvstore` entry point: bind flags, log the resolved config, serve.

Invariants:
    - Only flags given explicitly override env/config-file values (argparse SUPPRESS)
    - Resolved settings are logged once at startup with addresses redacted
    - Fatal errors are logged and turned into a non-zero exit code
"""

import argparse
import logging
import sys

import uvicorn
from pydantic import ValidationError

from dvstore.config import ENV_PREFIX, CONFIG_FILE, Settings, load_settings
from dvstore.core.redact import to_log_fields
from dvstore.infrastructure.observability import setup_logging
from dvstore.main import create_app

logger = logging.getLogger(__name__)

SHUTDOWN_TIMEOUT_SECONDS = 5


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dvstore",
        description="DVStore - API for storing and retrieving DV cluster data",
        epilog=(
            f"Every flag can also be set via {ENV_PREFIX}<FLAG> environment variables "
            f"(e.g. {ENV_PREFIX}HTTP_ADDRESS) or in ./{CONFIG_FILE}. Flags take precedence."
        ),
        argument_default=argparse.SUPPRESS,
        add_help=False,
    )
    parser.add_argument(
        "-h", "--help", action="help", help="Show this help message and exit",
    )
    for name, field in Settings.model_fields.items():
        parser.add_argument(
            "--" + name.replace("_", "-"),
            dest=name,
            help=f"{field.description} (default: {field.default})",
        )
    return parser


def log_settings(settings: Settings) -> None:
    """INFO log all resolved settings in alphabetical order."""
    fields = to_log_fields(settings.model_dump())
    logger.info("Parsed config", extra={"topic": "cmd", **fields})


def run(settings: Settings) -> None:
    host, port = settings.http_host_port()
    uvicorn.run(
        create_app(settings),
        host=host,
        port=port,
        log_config=None,
        timeout_graceful_shutdown=SHUTDOWN_TIMEOUT_SECONDS,
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(vars(args))
    except ValidationError as e:
        parser.error(str(e))

    setup_logging(settings.log_level, settings.log_format)
    log_settings(settings)

    try:
        run(settings)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True, extra={"topic": "app"})
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
