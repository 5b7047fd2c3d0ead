"""Administrative CLI for the device interaction history store."""

from __future__ import annotations

import argparse
import json
import logging
import uuid
from typing import Optional, Sequence

from device_history import database
from device_history.cli._helpers import add_common_args, configure_logging
from device_history.config import settings
from device_history.models.interaction import EntityKind
from device_history.schemas.device import DevicePage, DeviceSummaryOut
from device_history.services.aggregator import HistoryAggregator
from device_history.services.errors import DeviceHistoryError
from device_history.services.pagination import Page
from device_history.services.recorder import InteractionRecorder
from device_history.services.registry import DeviceRegistry
from device_history.services.scope import VisibilityScope

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="device-history",
        description="Register devices and inspect their interaction histories.",
    )
    add_common_args(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create missing tables")

    register = subparsers.add_parser("register", help="Register a device")
    register.add_argument("device_id", help="External device identifier")
    register.add_argument("mac_addr", help="Device MAC address")

    record = subparsers.add_parser("record", help="Record a domain or user access on a device")
    record.add_argument("kind", choices=[kind.value for kind in EntityKind])
    record.add_argument("device_id", help="External device identifier")
    record.add_argument("entity_id", type=uuid.UUID, help="Domain or user UUID")
    record.add_argument("--ip", required=True, help="Client IP address")
    record.add_argument("--mac", required=True, help="MAC address used if the device is unknown")
    record.add_argument("--at", type=int, default=None, help="Unix timestamp (default: now)")

    history = subparsers.add_parser("history", help="Print device histories as JSON")
    history.add_argument("--domain", dest="domains", action="append", type=uuid.UUID, default=[],
                         help="Visible domain UUID (repeatable)")
    history.add_argument("--user", dest="users", action="append", type=uuid.UUID, default=[],
                         help="Visible user UUID (repeatable)")
    history.add_argument("--page", type=int, default=None)
    history.add_argument("--limit", type=int, default=None)
    history.add_argument("--sort", default=None, help='JSON object, e.g. {"updatedAt": -1}')
    history.add_argument("--filters", default=None, help='JSON array of {"id": ..., "value": ...}')

    return parser


def _handle_init_db() -> int:
    database.init_db(database.engine)
    LOGGER.info("Tables created")
    return 0


def _handle_register(args: argparse.Namespace) -> int:
    with database.SessionLocal() as db:
        device = DeviceRegistry(db, settings.DEVICE_LIMIT).register(args.device_id, args.mac_addr)
        LOGGER.info("Device %s registered as %s", device.device_id, device.id)
    return 0


def _handle_record(args: argparse.Namespace) -> int:
    with database.SessionLocal() as db:
        recorder = InteractionRecorder(db, DeviceRegistry(db, settings.DEVICE_LIMIT))
        recorder.record_access(EntityKind(args.kind), args.device_id, args.entity_id, args.ip, args.mac, args.at)
    LOGGER.info("Recorded %s %s on device %s", args.kind, args.entity_id, args.device_id)
    return 0


def _handle_history(args: argparse.Namespace) -> int:
    scope = VisibilityScope.of(args.domains, args.users)
    with database.SessionLocal() as db:
        aggregator = HistoryAggregator(db, default_page_limit=settings.DEFAULT_PAGE_LIMIT)
        result = aggregator.list_devices(
            scope, page=args.page, limit=args.limit, sort=args.sort, filters=args.filters
        )
        if isinstance(result, Page):
            payload = DevicePage.from_page(result).model_dump(mode="json", by_alias=True)
        else:
            payload = [
                DeviceSummaryOut.from_summary(summary).model_dump(mode="json", by_alias=True)
                for summary in result
            ]
    print(json.dumps(payload, indent=2))
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)

    try:
        if args.command == "init-db":
            return _handle_init_db()
        if args.command == "register":
            return _handle_register(args)
        if args.command == "record":
            return _handle_record(args)
        if args.command == "history":
            return _handle_history(args)
    except DeviceHistoryError as exc:
        LOGGER.error("%s", exc)
        return 2
    parser.error(f"Unknown command: {args.command}")
    return 2


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
