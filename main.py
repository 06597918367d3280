import argparse
import logging
import sys
from typing import List, Optional

import structlog

from codec import read_events, write_accounts
from config import Settings, get_settings, get_settings_for_environment
from errors import EventParseError
from services import get_transaction_processor

logger = structlog.get_logger()


def configure_logging(settings: Settings) -> None:
    """Send structured diagnostics to stderr, keeping stdout for the accounts CSV."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(stream=sys.stderr, format="%(message)s", level=level)
    logging.getLogger().setLevel(level)

    if settings.log_format == "text":
        renderer = structlog.dev.ConsoleRenderer(colors=False)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ledger-reconcile",
        description="Apply a CSV stream of transactions and print the final account states as CSV",
    )
    parser.add_argument("input", help="Path to the transactions CSV, or - for stdin")
    parser.add_argument(
        "--env",
        choices=["development", "production", "testing"],
        default=None,
        help="Settings profile (defaults to environment/.env settings)",
    )
    parser.add_argument("--log-level", default=None, help="Override the configured log level")
    parser.add_argument("--log-format", choices=["json", "text"], default=None, help="Diagnostic log format")
    return parser


def load_settings(args: argparse.Namespace) -> Settings:
    settings = get_settings_for_environment(args.env) if args.env else get_settings()
    overrides = {}
    if args.log_level:
        overrides["log_level"] = args.log_level
    if args.log_format:
        overrides["log_format"] = args.log_format
    if overrides:
        settings = settings.model_copy(update=overrides)
    return settings


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings(args)
    configure_logging(settings)

    processor = get_transaction_processor(settings)
    malformed: List[EventParseError] = []

    def skip_row(error: EventParseError) -> None:
        malformed.append(error)
        logger.warning("Skipping malformed row", line=error.line, error=error.cause)

    logger.info("Starting ledger reconciliation", app=settings.app_name, input=args.input)

    try:
        if args.input == "-":
            if hasattr(sys.stdin, "reconfigure"):
                sys.stdin.reconfigure(encoding=settings.input_encoding, errors=settings.input_errors)
            report = processor.process_all(read_events(sys.stdin, on_error=skip_row))
        else:
            with open(
                args.input,
                newline="",
                encoding=settings.input_encoding,
                errors=settings.input_errors,
            ) as source:
                report = processor.process_all(read_events(source, on_error=skip_row))
    except OSError as e:
        logger.error("Cannot read input", input=args.input, error=str(e))
        return 1

    report.malformed_rows = len(malformed)
    rows = write_accounts(processor.accounts(), sys.stdout)

    logger.info(
        "Ledger reconciliation completed",
        accounts=rows,
        processed=report.processed,
        rejected=report.rejected,
        malformed_rows=report.malformed_rows,
        rejections={reason.value: count for reason, count in report.rejections.items()}
    )
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
