"""
kafka_resources - command line interface

Copyright (c) 2024 Aiven Ltd
See LICENSE for details
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from kafka_resources.config import InvalidConfiguration, read_config
from kafka_resources.container import KafkaResourcesContainer
from kafka_resources.errors import ModuleLoadDeclined
from kafka_resources.logging_setup import configure_logging, log_config_without_secrets
from kafka_resources.version import __version__

import argparse
import contextlib
import logging
import sys

logger = logging.getLogger(__name__)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="kafka-resources", description="Kafka topology resources")
    parser.add_argument("--version", action="version", help="show program version", version=__version__)
    subparsers = parser.add_subparsers(help="Command", dest="command", required=True)

    subparsers.add_parser("show-version", help="Show the version of librdkafka in use")

    parser_resolve = subparsers.add_parser("resolve", help="Resolve the topology and probe every producer topic")
    parser_resolve.add_argument("--config", help="Settings file path (JSON)", required=False)
    parser_resolve.add_argument("--topology", help="Topology file path, overrides the settings", required=False)
    parser_resolve.add_argument("--verbose", default=False, action="store_true", help="Enable debug logging.")

    return parser.parse_args(argv)


def dispatch(args: argparse.Namespace, container: KafkaResourcesContainer) -> int:
    if args.command == "show-version":
        print(f"librdkafka version currently running against: {container.kafka_client().version()}")
        return 0

    if args.command == "resolve":
        config = read_config(args.config)
        overrides: dict[str, object] = {}
        if args.topology:
            overrides["topology_file"] = args.topology
        if args.verbose:
            overrides["log_level"] = "DEBUG"
        config = config.set_config_defaults(overrides)

        container.config.override(config)
        configure_logging(config=config)
        log_config_without_secrets(config)

        module = container.module()
        try:
            report = module.load()
        except ModuleLoadDeclined as e:
            logger.error("Kafka resources not loaded: %s", e)
            return 2

        try:
            print(report.format())
        finally:
            module.unload()
        return 0 if report.ok else 1

    raise NotImplementedError(f"Unknown command: {args.command!r}")


@contextlib.contextmanager
def handle_keyboard_interrupt() -> Iterator[None]:
    try:
        yield
    except KeyboardInterrupt as e:
        raise SystemExit(2) from e


@handle_keyboard_interrupt()
def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    container = KafkaResourcesContainer()

    try:
        sys.exit(dispatch(args, container))
    except InvalidConfiguration as e:
        logger.error("Invalid configuration: %s", e)
        sys.exit(2)
