"""
Command line entry point.

Examples:
    opnmanager devices
    opnmanager flush-arp
    opnmanager snapshots list --page 1 --rows 20
    opnmanager reboot --yes
"""

import argparse
import dataclasses
import json
import logging
import os
import sys
from typing import Any, Callable, Dict, List, Optional

from .config import Settings, load_settings
from .device_service import DeviceService
from .exceptions import OPNsenseError
from .logging_config import configure_logging
from .power_service import PowerService
from .snapshot_service import DEFAULT_ROWS_PER_PAGE, SnapshotService

logger = logging.getLogger(__name__)


def setup_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="opnmanager",
        description="Query and manage an OPNsense firewall through its REST API",
    )
    parser.add_argument("--log-level", default=None, help="Override the configured log level (e.g. DEBUG)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("devices", help="Combined ARP + NDP device inventory")
    subparsers.add_parser("arp", help="Raw ARP table")
    subparsers.add_parser("ndp", help="Raw NDP table")
    subparsers.add_parser("flush-arp", help="Flush the ARP table")

    reboot_parser = subparsers.add_parser("reboot", help="Reboot the firewall")
    reboot_parser.add_argument("--yes", action="store_true", help="Confirm the reboot")

    snap_parser = subparsers.add_parser("snapshots", help="ZFS snapshot management")
    snap_sub = snap_parser.add_subparsers(dest="snapshot_command", required=True)

    list_parser = snap_sub.add_parser("list", help="List snapshots")
    list_parser.add_argument("--page", type=int, default=1)
    list_parser.add_argument("--rows", type=int, default=DEFAULT_ROWS_PER_PAGE)

    snap_sub.add_parser("supported", help="Check whether snapshots are supported")
    snap_sub.add_parser("new", help="Show the suggested name for a new snapshot")

    get_parser = snap_sub.add_parser("get", help="Show one snapshot")
    get_parser.add_argument("uuid")
    get_parser.add_argument("--fetch-mode", default=None, help='e.g. "copy" when preparing a clone')

    add_parser = snap_sub.add_parser("add", help="Create (or clone) a snapshot")
    add_parser.add_argument("name")
    add_parser.add_argument("--clone", metavar="UUID", default=None, help="Clone this snapshot")

    del_parser = snap_sub.add_parser("delete", help="Delete a snapshot")
    del_parser.add_argument("uuid")

    act_parser = snap_sub.add_parser("activate", help="Activate a snapshot on next boot")
    act_parser.add_argument("uuid")

    rename_parser = snap_sub.add_parser("rename", help="Rename a snapshot")
    rename_parser.add_argument("uuid")
    rename_parser.add_argument("name")

    return parser


def _to_jsonable(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, list):
        return [_to_jsonable(v) for v in value]
    return value


def _snapshot_command(args: argparse.Namespace, service: SnapshotService) -> Any:
    handlers: Dict[str, Callable[[], Any]] = {
        "list": lambda: service.list_snapshots(current_page=args.page, rows_per_page=args.rows),
        "supported": lambda: {"supported": service.is_supported()},
        "new": service.get_new_snapshot,
        "get": lambda: service.get_snapshot(args.uuid, fetch_mode=args.fetch_mode),
        "add": lambda: service.add_snapshot(args.name, uuid=args.clone),
        "delete": lambda: service.delete_snapshot(args.uuid),
        "activate": lambda: service.activate_snapshot(args.uuid),
        "rename": lambda: service.update_snapshot(args.uuid, args.name),
    }
    return handlers[args.snapshot_command]()


def run_command(args: argparse.Namespace, settings: Settings) -> Any:
    kwargs = {"profile_store": settings.profile_store, "timeout": settings.timeout}

    if args.command == "snapshots":
        return _snapshot_command(args, SnapshotService(**kwargs))
    if args.command == "reboot":
        return {"status": PowerService(**kwargs).reboot()}

    devices = DeviceService(**kwargs)
    if args.command == "devices":
        return devices.get_combined_devices()
    if args.command == "arp":
        return devices.get_arp_devices()
    if args.command == "ndp":
        return devices.get_ndp_devices()
    if args.command == "flush-arp":
        return {"deleted": devices.flush_arp_table()}
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    args = setup_parser().parse_args(argv)

    # Configure logging early so load_settings() warnings/errors are visible.
    configure_logging(args.log_level or os.getenv("LOG_LEVEL", "INFO"))

    if args.command == "reboot" and not args.yes:
        print("Refusing to reboot without --yes", file=sys.stderr)
        return 2

    try:
        settings = load_settings()
        configure_logging(args.log_level or settings.log_level, settings.log_dir)
        result = run_command(args, settings)
    except OPNsenseError as exc:
        logger.error("%s failed: %s", args.command, exc)
        print(str(exc), file=sys.stderr)
        return 1

    print(json.dumps(_to_jsonable(result), indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    sys.exit(main())
