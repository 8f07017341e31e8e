from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from idsync.adapters.files import load_definitions
from idsync.app import run_delta_sync, run_full_import, run_full_sync, run_housekeeping
from idsync.config import ConfigurationError, configure_logging, get_definitions_path
from idsync.domain.sync import CancellationSignal

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from idsync.domain.model import Activity, SyncDefinitions

log = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {parsed}")
    return parsed


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Synchronise identities between systems")
    subparsers = parser.add_subparsers(dest="command", required=True)

    shared = argparse.ArgumentParser(add_help=False)
    shared.add_argument(
        "--definitions",
        type=Path,
        help="Path to the JSON definitions document (defaults to $IDSYNC_DEFINITIONS)",
    )
    shared.add_argument(
        "--page-size",
        type=_positive_int,
        default=None,
        help="Number of objects per page or import batch (defaults to config)",
    )

    importer = subparsers.add_parser(
        "import", parents=[shared], help="Full import from a JSON-lines file"
    )
    importer.add_argument("--system", type=int, required=True, help="Connected system id")
    importer.add_argument(
        "--file",
        type=Path,
        required=True,
        help="JSON-lines file with one exported object per line",
    )

    full_sync = subparsers.add_parser(
        "full-sync", parents=[shared], help="Synchronise every object of a connected system"
    )
    full_sync.add_argument("--system", type=int, required=True, help="Connected system id")

    delta_sync = subparsers.add_parser(
        "delta-sync",
        parents=[shared],
        help="Synchronise objects changed since the last completed sync",
    )
    delta_sync.add_argument("--system", type=int, required=True, help="Connected system id")

    housekeeping = subparsers.add_parser(
        "housekeeping", help="Delete metaverse objects past their deletion grace period"
    )
    housekeeping.add_argument(
        "--batch-size",
        type=_positive_int,
        default=None,
        help="Maximum number of objects to delete (defaults to config)",
    )

    return parser.parse_args(list(argv))


def _load_definitions(args: argparse.Namespace) -> SyncDefinitions | None:
    if args.command == "housekeeping":
        return None
    path: Path = args.definitions or get_definitions_path()
    return load_definitions(path)


def _run(
    args: argparse.Namespace,
    definitions: SyncDefinitions | None,
    cancellation: CancellationSignal,
) -> Activity | None:
    if args.command == "import":
        if not args.file.is_file():
            raise FileNotFoundError(f"Import file not found: {args.file}")
        return run_full_import(
            args.system,
            args.file,
            definitions=definitions,
            page_size=args.page_size,
            cancellation=cancellation,
        )
    if args.command == "full-sync":
        return run_full_sync(
            args.system,
            definitions=definitions,
            page_size=args.page_size,
            cancellation=cancellation,
        )
    if args.command == "delta-sync":
        return run_delta_sync(
            args.system,
            definitions=definitions,
            page_size=args.page_size,
            cancellation=cancellation,
        )
    if args.command == "housekeeping":
        run_housekeeping(batch_size=args.batch_size)
        return None
    raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        definitions = _load_definitions(parsed_args)
    except (ValueError, ConfigurationError):
        log.exception("CLI validation error")
        sys.exit(2)

    cancellation = CancellationSignal()

    def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
        """Stop the run at the next object or page boundary on SIGINT (Ctrl+C)."""
        log.info("Cancellation requested by user (Ctrl+C)")
        cancellation.cancel()

    previous_handler = signal(SIGINT, sigint_handler)
    try:
        activity = _run(parsed_args, definitions, cancellation)
    except Exception:
        log.exception("Fatal error during sync")
        sys.exit(1)
    finally:
        signal(SIGINT, previous_handler)

    if activity is None:
        return
    for item in activity.errors:
        log.warning(
            "%s %s/%s: %s", item.error_type, item.object_type, item.external_id, item.message
        )
    if activity.cancelled:
        log.warning("Run cancelled before completion: %s", activity.summary())


if __name__ == "__main__":
    main()
