"""Command-line interface for scanlink."""

from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
import sys
from pathlib import Path
from typing import Optional

from . import constants
from .app import DeviceAgent
from .client import OrderClient
from .config import ScanlinkConfig, load_config
from .core.models import Order
from .logging import configure_logging
from .orders.notifier import CallbackObserver, Notification

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scanlink", description="Card-scan order feedback device and order client"
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=constants.DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {constants.DEFAULT_CONFIG_PATH})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("device", help="Run the card scan device loop")

    watch_parser = subparsers.add_parser(
        "watch", help="Log in and print live order updates"
    )
    watch_parser.add_argument("--username", help="Log in as this user")
    watch_parser.add_argument(
        "--password", help="Password (prompted when omitted)"
    )

    subparsers.add_parser("logout", help="Forget the saved order client session")

    subparsers.add_parser(
        "show-config", help="Print the resolved configuration and exit"
    )

    return parser


def _print_notification(notification: Notification) -> None:
    print(f"[{notification.title}] {notification.body}")


def _print_delivered(order: Order) -> None:
    print(f"*** Delivered: {order.toy_name} (order {order.id}) ***")


async def _watch(
    config: ScanlinkConfig, username: Optional[str], password: Optional[str]
) -> int:
    client = OrderClient(config)
    client.notifier.subscribe(
        CallbackObserver(
            on_notification=_print_notification,
            on_order_delivered=_print_delivered,
        )
    )

    try:
        if not await client.init():
            if not username:
                LOGGER.error("No saved session; pass --username to log in")
                return 1
            secret = password if password is not None else getpass.getpass()
            if not await client.login(username, secret):
                LOGGER.error("Login failed: %s", client.error_message)
                return 1

        for order in client.orders:
            print(f"{order.id}\t{order.status}\t{order.toy_name}\t{order.assigned_person}")

        LOGGER.info("Watching live order updates; press Ctrl-C to stop")
        await asyncio.Event().wait()
    finally:
        await client.aclose()
    return 0


async def _logout(config: ScanlinkConfig) -> int:
    client = OrderClient(config)
    try:
        if await client.init():
            await client.logout()
        else:
            config.client.session_path.unlink(missing_ok=True)
    finally:
        await client.aclose()
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config)

    if args.command == "device":
        DeviceAgent.start(config)
        return 0

    if args.command in ("watch", "logout"):
        configure_logging(
            config.logging.level,
            log_path=config.logging.path,
            log_network=config.logging.log_network,
        )
        try:
            if args.command == "watch":
                return asyncio.run(_watch(config, args.username, args.password))
            return asyncio.run(_logout(config))
        except KeyboardInterrupt:
            return 0

    if args.command == "show-config":
        print(f"Configuration loaded from {config.path!s}\n")
        for section in config.raw.sections():
            print(f"[{section}]")
            for key, value in config.raw[section].items():
                print(f"{key} = {value}")
            print()
        return 0

    LOGGER.error("Unknown command: %s", args.command)
    return 1


if __name__ == "__main__":
    sys.exit(main())
