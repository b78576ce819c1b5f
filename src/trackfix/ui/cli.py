# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from trackfix.app import (
    run_cloud_sync,
    run_duplicates,
    run_missing,
    run_ownership,
    run_relocate,
)
from trackfix.config import configure_logging
from trackfix.domain.model import MergePolicy

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _add_common(parser: argparse.ArgumentParser, *, fixes: bool = True) -> None:
    parser.add_argument("snapshot", help="Path to the JSON library snapshot")
    parser.add_argument(
        "--store",
        action="store_true",
        help="Persist the scan results in the trackfix database",
    )
    if fixes:
        parser.add_argument(
            "--apply",
            action="store_true",
            help="Apply the suggested fixes to the loaded library",
        )
        parser.add_argument(
            "--output",
            type=str,
            help="Write the updated library snapshot to this path",
        )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile a music library snapshot")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    duplicates = subparsers.add_parser("duplicates", help="Find and merge duplicate tracks")
    _add_common(duplicates)
    duplicates.add_argument(
        "--threshold",
        type=str,
        help="Confidence level name or number in [0, 1] (defaults to config)",
    )
    duplicates.add_argument(
        "--policy",
        type=MergePolicy,
        choices=[
            policy for policy in MergePolicy if policy is not MergePolicy.KEEP_EXPLICIT_CHOICE
        ],
        default=MergePolicy.KEEP_HIGHEST_BITRATE,
        help="Survivor policy when applying merges (default: %(default)s)",
    )

    missing = subparsers.add_parser("missing", help="List tracks whose files are missing")
    _add_common(missing, fixes=False)

    relocate = subparsers.add_parser("relocate", help="Find new locations for missing tracks")
    _add_common(relocate)
    relocate.add_argument(
        "--search-path",
        dest="search_paths",
        action="append",
        required=True,
        help="Directory to search for moved files (repeatable)",
    )
    relocate.add_argument(
        "--threshold",
        type=str,
        help="Auto-relocation confidence level name or number (defaults to config)",
    )
    relocate.add_argument(
        "--limit",
        type=int,
        default=10,
        help="Maximum candidates per track (default: %(default)s)",
    )

    cloud = subparsers.add_parser("cloud-sync", help="Reconcile cloud-sync paths")
    _add_common(cloud)
    cloud.add_argument(
        "--cloud-root",
        dest="cloud_roots",
        action="append",
        default=[],
        help="Cloud sync root (repeatable; defaults to config)",
    )

    ownership = subparsers.add_parser("ownership", help="Resolve cross-computer ownership")
    _add_common(ownership)

    return parser.parse_args(list(argv))


def _parse_threshold(value: str | None) -> str | float | None:
    if value is None:
        return None
    try:
        number = float(value)
    except ValueError:
        return value.strip().lower()
    if not 0.0 <= number <= 1.0:
        raise ValueError(f"Threshold must be within [0, 1]: {value}")
    return number


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        threshold = _parse_threshold(getattr(parsed_args, "threshold", None))
        if parsed_args.command == "relocate" and parsed_args.limit < 1:
            raise ValueError("--limit must be at least 1")
    except ValueError:
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(2)
    configure_logging(verbose=parsed_args.verbose)

    try:
        if parsed_args.command == "duplicates":
            report = run_duplicates(
                parsed_args.snapshot,
                threshold=threshold,
                policy=parsed_args.policy,
                apply=parsed_args.apply,
                output=parsed_args.output,
                store=parsed_args.store,
            )
        elif parsed_args.command == "missing":
            report = run_missing(parsed_args.snapshot, store=parsed_args.store)
        elif parsed_args.command == "relocate":
            report = run_relocate(
                parsed_args.snapshot,
                search_paths=tuple(parsed_args.search_paths),
                threshold=threshold,
                limit=parsed_args.limit,
                apply=parsed_args.apply,
                output=parsed_args.output,
                store=parsed_args.store,
            )
        elif parsed_args.command == "cloud-sync":
            report = run_cloud_sync(
                parsed_args.snapshot,
                cloud_roots=tuple(parsed_args.cloud_roots),
                apply=parsed_args.apply,
                output=parsed_args.output,
                store=parsed_args.store,
            )
        elif parsed_args.command == "ownership":
            report = run_ownership(
                parsed_args.snapshot,
                apply=parsed_args.apply,
                output=parsed_args.output,
                store=parsed_args.store,
            )
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except Exception:
        log.exception("Fatal error during reconciliation")
        sys.exit(1)

    print(json.dumps(report, indent=2, ensure_ascii=False))


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
