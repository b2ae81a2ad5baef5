"""Command line entry point for trac-relay.

The relay runs in a worker thread while the main thread waits for it to
finish or for an interrupt, which closes the event stream and lets the
worker return.
"""

import argparse
import signal
import sys
import threading

from .bot.relay import Relay
from .config.loader import load_config
from .exceptions import RelayError
from .relay_logging import get_logger, setup_logging

logger = get_logger()

# Upper bound for in-flight Trac requests to finish after shutdown
SHUTDOWN_GRACE_SECONDS = 15.0


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="trac-relay",
        description="Mattermost bot replying to Trac ticket references.",
    )
    parser.add_argument(
        "-c",
        "--config",
        required=True,
        help="Configuration file (YAML)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable extra debugging logs, including HTTP exchanges",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run the relay until interrupted.

    Returns:
        Process exit code
    """
    args = parse_args(argv)
    setup_logging(debug=args.debug)

    try:
        config = load_config(args.config)
    except RelayError as e:
        logger.error(f"Error while loading config file: {e.message}")
        return 1

    try:
        relay = Relay.from_config(config, debug=args.debug)
    except RelayError as e:
        logger.error(f"Error while starting client: {e.message}")
        return 1

    errors: list[Exception] = []

    def _run() -> None:
        try:
            relay.run()
        except RelayError as e:
            logger.error(f"Client error: {e.message}")
            errors.append(e)
        except Exception as e:
            logger.exception("Unexpected client error")
            errors.append(e)

    worker = threading.Thread(target=_run, name="trac-relay", daemon=True)

    # SIGTERM gets the same graceful shutdown as Ctrl-C
    previous_handler = signal.signal(signal.SIGTERM, signal.default_int_handler)

    worker.start()
    try:
        while worker.is_alive():
            worker.join(timeout=0.5)
    except KeyboardInterrupt:
        logger.info("Received interrupt signal, doing a graceful shutdown")
    finally:
        signal.signal(signal.SIGTERM, previous_handler)

    relay.close()
    worker.join(timeout=SHUTDOWN_GRACE_SECONDS)

    if errors:
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
