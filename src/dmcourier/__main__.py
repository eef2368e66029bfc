"""CLI entry point for dmcourier.

Reads the message body from standard input and delivers it to the receiver.

Examples:
    ```bash
    echo "hello" | dmcourier --from ~/.nostr/me.nsec --to nprofile1...
    echo "hello" | dmcourier --from me.nsec --to npub1... --via wss://relay.example.com
    echo "hello" | dmcourier --from me.nsec --to nprofile1... --cc wss://my.relay --dry-run
    ```

Exit codes:
    0: The message was published (see the per-relay report for acks).
    1: Configuration, key, receiver or publish error.
    2: Invalid command line (argparse).
    3: Total failure: no live relay, or the notification channel broke
       before any relay answered.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from dmcourier.core.exceptions import (
    ConfigurationError,
    NoLiveRelaysError,
    PublishingError,
)
from dmcourier.core.logger import LogConfig, Logger, setup_logging
from dmcourier.core.yaml import load_yaml
from dmcourier.models.constants import NetworkType
from dmcourier.services.courier import Courier, CourierConfig, CourierReport
from dmcourier.utils.keys import load_keys_from_file
from dmcourier.utils.protocol import NostrRelayNetwork


EXIT_OK = 0
EXIT_ERROR = 1
EXIT_TOTAL_FAILURE = 3

logger = Logger("cli")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="dmcourier",
        description="Send a Nostr direct message (body read from stdin)",
    )

    parser.add_argument(
        "--from",
        dest="from_file",
        type=Path,
        required=True,
        help="File holding the sender secret key (nsec or hex)",
    )

    parser.add_argument(
        "--to",
        required=True,
        help="Receiver: nprofile, npub or hex public key",
    )

    parser.add_argument(
        "--via",
        action="append",
        default=[],
        metavar="URL",
        help="Receiver relay hint (repeatable, required unless --to is an nprofile)",
    )

    parser.add_argument(
        "--cc",
        action="append",
        default=[],
        metavar="URL",
        help="Relay to discover the sender's own DM relays from (repeatable)",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Select relays and exit without sending",
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log progress (same as --log-level INFO)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (overrides --verbose and the config file)",
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="YAML configuration file",
    )

    return parser.parse_args(argv)


def load_config(path: Path | None) -> CourierConfig:
    """Load the courier configuration, or the defaults when *path* is ``None``."""
    if path is None:
        return CourierConfig()
    return CourierConfig.model_validate(load_yaml(str(path)))


def resolve_log_config(args: argparse.Namespace, config: CourierConfig) -> LogConfig:
    """Apply ``--verbose`` / ``--log-level`` on top of the configured logging."""
    if args.log_level is not None:
        return config.logging.model_copy(update={"level": args.log_level})
    if args.verbose:
        return config.logging.model_copy(update={"level": "INFO"})
    return config.logging


def print_report(report: CourierReport) -> None:
    """Write the per-relay delivery report to stdout."""
    if report.outcome is None:
        for url in report.selected.urls:
            print(f"{url} selected")
        return
    print(report.outcome.message_id)
    for url, state in report.outcome.summary().items():
        print(f"{url} {state}")


async def main(argv: list[str] | None = None) -> int:
    """Main entry point: parse args, load config and keys, run the courier."""
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except (ConfigurationError, OSError, ValueError) as e:
        setup_logging(LogConfig())
        logger.error("config_invalid", path=str(args.config), error=str(e))
        return EXIT_ERROR

    log_config = resolve_log_config(args, config)
    setup_logging(log_config)
    # Module logger predates the config; use one honoring json_output from here on
    log = Logger("cli", json_output=log_config.json_output)

    try:
        keys = load_keys_from_file(args.from_file)
    except ValueError as e:
        log.error("secret_key_invalid", error=str(e))
        return EXIT_ERROR

    message = sys.stdin.read()

    network = NostrRelayNetwork(proxy_url=config.prober.networks.get_proxy_url(NetworkType.TOR))
    courier = Courier(network, keys, config, log_config=log_config)

    try:
        report = await courier.run(
            args.to, message, via=args.via, cc=args.cc, dry_run=args.dry_run
        )
    except ConfigurationError as e:
        log.error("configuration_error", error=str(e))
        return EXIT_ERROR
    except NoLiveRelaysError as e:
        log.error("no_live_relays", error=str(e), candidates=",".join(e.candidates))
        return EXIT_TOTAL_FAILURE
    except PublishingError as e:
        log.error("publish_failed", error=str(e))
        return EXIT_ERROR

    print_report(report)
    if report.is_total_failure:
        log.error("delivery_unconfirmed", error=report.outcome.channel_error)
        return EXIT_TOTAL_FAILURE
    return EXIT_OK


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("interrupted")
        sys.exit(130)


if __name__ == "__main__":
    cli()
