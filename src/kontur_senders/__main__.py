"""CLI entry point for Kontur Senders.

Validates configuration and sends test notifications through the
configured gateways.

Usage:
    python -m kontur_senders [options]
"""

from __future__ import annotations

import argparse
import json
import logging
import logging.config
import sys
import time
from typing import NoReturn

from pydantic import ValidationError

from kontur_senders import __version__
from kontur_senders.config import Settings, clear_settings_cache, get_settings
from kontur_senders.errors import SendError
from kontur_senders.models import Contact, Event, State, Trigger
from kontur_senders.senders import MailSender, NotificationSender, SmsSender

# Application info
APP_NAME = "Kontur Senders"
APP_VERSION = __version__

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130

TEST_TRIGGER_ID = "test"
TEST_TRIGGER_NAME = "Test trigger"


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog="kontur-senders",
        description="Send alert notifications through kontur SMS and mail gateways.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m kontur_senders --config-check                  Validate config and exit
  python -m kontur_senders --test-sms 9123456789           Send a test SMS
  python -m kontur_senders --test-mail ops@example.com     Send a test email
  python -m kontur_senders --test-sms 9123456789 --dry-run Print the request body only
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {APP_VERSION}",
    )

    parser.add_argument(
        "--config-check",
        action="store_true",
        help="Validate configuration and exit",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override logging level (default: from settings)",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the gateway request body instead of sending it",
    )

    parser.add_argument(
        "--test-sms",
        metavar="PHONE",
        default=None,
        help="Send a test notification to this phone number",
    )

    parser.add_argument(
        "--test-mail",
        metavar="ADDRESS",
        default=None,
        help="Send a test notification to this email address",
    )

    return parser


def configure_logging(level: str) -> None:
    """Configure logging for the application.

    Args:
        level: Logging level string (DEBUG, INFO, etc.)
    """
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "detailed": {
                "format": (
                    "%(asctime)s [%(levelname)s] %(name)s (%(filename)s:%(lineno)d): %(message)s"
                ),
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "detailed" if level == "DEBUG" else "standard",
                "stream": "ext://sys.stderr",
            },
        },
        "root": {
            "level": level,
            "handlers": ["console"],
        },
        # Quieter logging for noisy libraries
        "loggers": {
            "httpx": {"level": "WARNING"},
            "httpcore": {"level": "WARNING"},
        },
    }
    logging.config.dictConfig(config)


def print_config_summary(settings: Settings) -> None:
    """Print a summary of the configuration.

    Args:
        settings: Application settings.
    """
    summary = settings.redacted_summary()
    print("Configuration:")
    print(f"  Front URI: {summary['front_uri']}")
    print(f"  Time zone: {summary['timezone']}")
    print(f"  Log Level: {summary['log_level']}")
    print(f"  Dry Run: {summary['dry_run']}")
    print(f"  SMS: {'enabled' if summary['sms_enabled'] == 'True' else 'disabled'}")
    print(f"  Mail: {'enabled' if summary['mail_enabled'] == 'True' else 'disabled'}")
    print(f"  Shortener: {'enabled' if summary['shortener_enabled'] == 'True' else 'disabled'}")
    print()


def validate_config() -> Settings | None:
    """Validate and load configuration.

    Returns:
        Settings instance if valid, None if invalid.
    """
    try:
        # Clear cache to force reload
        clear_settings_cache()
        return get_settings()
    except ValidationError as e:
        print("Configuration validation failed:", file=sys.stderr)
        for error in e.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            msg = error["msg"]
            print(f"  {field}: {msg}", file=sys.stderr)
        return None


def run_config_check(settings: Settings) -> int:
    """Run configuration check and exit.

    Args:
        settings: Validated settings.

    Returns:
        Exit code (0 for success).
    """
    print("Configuration is valid!")
    print()
    print_config_summary(settings)

    if not settings.sms.enabled and not settings.mail.enabled:
        print("No gateway configured.", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    print("All checks passed. Ready to send.")
    return EXIT_SUCCESS


def build_test_notification() -> tuple[list[Event], Trigger]:
    """Build the synthetic events and trigger of a test notification."""
    trigger = Trigger(
        id=TEST_TRIGGER_ID,
        name=TEST_TRIGGER_NAME,
        warn_value=10,
        error_value=20,
        tags=("test",),
    )
    events = [
        Event(
            metric="Test.metric.value",
            old_state=State.TEST,
            state=State.TEST,
            timestamp=int(time.time()),
            value=1,
            trigger_id=TEST_TRIGGER_ID,
        )
    ]
    return events, trigger


def send_test_notification(
    sender: NotificationSender,
    config: dict[str, str],
    address: str,
    dry_run: bool,
) -> int:
    """Send (or in dry-run mode print) a test notification.

    Args:
        sender: Uninitialized sender.
        config: Flat settings mapping for the sender.
        address: Destination phone number or email address.
        dry_run: Whether to print the request body instead of sending.

    Returns:
        Exit code.
    """
    logger = logging.getLogger(__name__)
    events, trigger = build_test_notification()
    contact = Contact(address=address, kind=sender.name)

    try:
        sender.initialize(config)
    except ValidationError as e:
        logger.error(f"Invalid {sender.name} configuration: {e}")
        return EXIT_CONFIG_ERROR

    with sender:
        try:
            if dry_run:
                body = sender.build_request(events, contact, trigger)
                print(json.dumps(body, indent=2, ensure_ascii=False))
                return EXIT_SUCCESS

            status = sender.send(events, contact, trigger)
        except SendError as e:
            logger.error(f"Test {sender.name} notification failed: {e}")
            return EXIT_ERROR

    logger.info(f"Test {sender.name} notification result: {status.value}")
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:]).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    # Validate configuration first
    settings = validate_config()
    if settings is None:
        sys.exit(EXIT_CONFIG_ERROR)

    # Determine effective log level
    log_level = args.log_level or settings.log_level
    configure_logging(log_level)

    if args.config_check:
        sys.exit(run_config_check(settings))

    if not args.test_sms and not args.test_mail:
        parser.print_usage(sys.stderr)
        print("Nothing to do: pass --config-check, --test-sms or --test-mail", file=sys.stderr)
        sys.exit(EXIT_ERROR)

    dry_run = args.dry_run or settings.dry_run
    exit_code = EXIT_SUCCESS
    try:
        if args.test_sms:
            exit_code = max(
                exit_code,
                send_test_notification(
                    SmsSender(), settings.sms_sender_config(), args.test_sms, dry_run
                ),
            )
        if args.test_mail:
            exit_code = max(
                exit_code,
                send_test_notification(
                    MailSender(), settings.mail_sender_config(), args.test_mail, dry_run
                ),
            )
    except KeyboardInterrupt:
        exit_code = EXIT_INTERRUPTED

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
