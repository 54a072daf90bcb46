"""
Module 09C - CLI Main Entry Point

Parses command-line arguments and dispatches to subcommands.

Usage:
    python -m idreg_cli submit alice --national-id 3201 --name "Alice" --birth-date 19900101 --key k1
    python -m idreg_cli approve alice
    python -m idreg_cli verify alice --national-id 3201 --name "Alice" --birth-date 19900101 --key k1
    python -m idreg_cli revoke alice --reason "fraud"
    python -m idreg_cli status alice
    python -m idreg_cli pending
    python -m idreg_cli info
    python -m idreg_cli rebuild
    python -m idreg_cli reload [--snapshot-id CID]
    python -m idreg_cli snapshot save | show <cid>
    python -m idreg_cli reset --yes
    python -m idreg_cli config --init

Environment Variables:
    IDREG_DATA_DIR              Local record store directory (default: .idreg)
    IDREG_TREE_DEPTH            Accumulator depth (default: 16)
    IDREG_LEDGER_BACKEND        Ledger backend: local, http
    IDREG_SNAPSHOT_BACKEND      Snapshot store: memory, directory, pinata
    IDREG_PROVER_BACKEND        Prover: reference, http
    IDREG_LOG_LEVEL             Log level (default: INFO)
    PINATA_JWT                  Pinata credentials for the pinata snapshot store
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import traceback
from pathlib import Path
from typing import Sequence

from core.config.runtime import get_default_config_template, load_runtime_config
from core.schemas.errors import RegistryException
from idreg_cli.commands import identity, registry
from idreg_cli.common import (
    EXIT_RUNTIME_ERROR,
    EXIT_SUCCESS,
    add_identity_arguments,
    exit_code_for,
    print_error,
)


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Configure logging for the CLI."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )


def _add_output_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Output machine-readable JSON",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Print tracebacks on failure",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="idreg",
        description="Identity Registry CLI - Submit, approve, verify and revoke identity commitments.",
    )
    parser.add_argument(
        "--version", action="version", version="%(prog)s 0.1.0"
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="Path to configuration file (default: ./idreg.json or ~/.config/idreg/config.json)",
    )
    parser.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help="Local record store directory (overrides config)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (overrides config)",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Also write logs to this file",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- submit command ---
    submit_parser = subparsers.add_parser(
        "submit",
        help="Register a subject's identity as pending",
    )
    submit_parser.add_argument("subject_id", type=str, help="Pseudonymous subject id")
    add_identity_arguments(submit_parser)
    _add_output_flags(submit_parser)
    submit_parser.set_defaults(func=identity.submit_cmd)

    # --- approve command ---
    approve_parser = subparsers.add_parser(
        "approve",
        help="Approve a pending subject and publish the new root",
    )
    approve_parser.add_argument("subject_id", type=str)
    _add_output_flags(approve_parser)
    approve_parser.set_defaults(func=identity.approve_cmd)

    # --- verify command ---
    verify_parser = subparsers.add_parser(
        "verify",
        help="Prove membership and submit the proof to the ledger",
        description="Reconcile with the ledger (reloading the snapshot at most once), "
                    "prove inclusion and record the verification.",
    )
    verify_parser.add_argument("subject_id", type=str)
    add_identity_arguments(verify_parser)
    _add_output_flags(verify_parser)
    verify_parser.set_defaults(func=identity.verify_cmd)

    # --- revoke command ---
    revoke_parser = subparsers.add_parser(
        "revoke",
        help="Revoke an approved or verified subject",
    )
    revoke_parser.add_argument("subject_id", type=str)
    revoke_parser.add_argument("--reason", type=str, default=None, help="Revocation reason")
    _add_output_flags(revoke_parser)
    revoke_parser.set_defaults(func=identity.revoke_cmd)

    # --- status command ---
    status_parser = subparsers.add_parser("status", help="Show one subject's record")
    status_parser.add_argument("subject_id", type=str)
    _add_output_flags(status_parser)
    status_parser.set_defaults(func=identity.status_cmd)

    # --- pending command ---
    pending_parser = subparsers.add_parser("pending", help="List pending subjects")
    _add_output_flags(pending_parser)
    pending_parser.set_defaults(func=identity.pending_cmd)

    # --- info command ---
    info_parser = subparsers.add_parser("info", help="Show accumulator and ledger state")
    _add_output_flags(info_parser)
    info_parser.set_defaults(func=registry.info_cmd)

    # --- rebuild command ---
    rebuild_parser = subparsers.add_parser(
        "rebuild",
        help="Rebuild the accumulator from local records and publish it",
    )
    _add_output_flags(rebuild_parser)
    rebuild_parser.set_defaults(func=registry.rebuild_cmd)

    # --- reload command ---
    reload_parser = subparsers.add_parser(
        "reload",
        help="Replace local state with a stored snapshot",
    )
    reload_parser.add_argument(
        "--snapshot-id",
        type=str,
        default=None,
        help="Snapshot content id (default: the ledger's current snapshot)",
    )
    _add_output_flags(reload_parser)
    reload_parser.set_defaults(func=registry.reload_cmd)

    # --- snapshot command ---
    snapshot_parser = subparsers.add_parser("snapshot", help="Save or inspect snapshots")
    snapshot_sub = snapshot_parser.add_subparsers(dest="snapshot_action", required=True)
    snapshot_save = snapshot_sub.add_parser("save", help="Upload current local state")
    _add_output_flags(snapshot_save)
    snapshot_show = snapshot_sub.add_parser("show", help="Fetch and check a snapshot")
    snapshot_show.add_argument("snapshot_id", type=str)
    _add_output_flags(snapshot_show)
    snapshot_parser.set_defaults(func=registry.snapshot_cmd)

    # --- reset command ---
    reset_parser = subparsers.add_parser(
        "reset",
        help="Delete local records and cached accumulator",
    )
    reset_parser.add_argument(
        "--yes",
        action="store_true",
        default=False,
        help="Confirm the reset",
    )
    reset_parser.set_defaults(func=registry.reset_cmd)

    # --- config command ---
    config_parser = subparsers.add_parser(
        "config",
        help="Manage configuration",
        description="Create or show configuration files.",
    )
    config_parser.add_argument(
        "--init",
        action="store_true",
        default=False,
        help="Create a template configuration file",
    )
    config_parser.add_argument(
        "--show",
        action="store_true",
        default=False,
        help="Show current configuration (secrets masked)",
    )
    config_parser.add_argument(
        "--path",
        type=str,
        default="idreg.json",
        help="Path for config file (default: idreg.json)",
    )
    config_parser.set_defaults(func=config_cmd)

    return parser


def config_cmd(args: argparse.Namespace) -> int:
    """Handle config command."""
    if args.init:
        config_path = Path(args.path)
        if config_path.exists():
            print(f"Error: Config file already exists: {config_path}", file=sys.stderr)
            return EXIT_RUNTIME_ERROR

        config_path.write_text(get_default_config_template())
        print(f"Created configuration file: {config_path}")
        print("\nEdit this file to configure your settings.")
        print("You can also use environment variables (IDREG_* prefix).")
        return EXIT_SUCCESS

    if args.show:
        print(json.dumps(args.runtime_config.to_dict(), indent=2))
        return EXIT_SUCCESS

    # Default: show help
    print("Usage: idreg config [--init|--show]")
    print("  --init  Create a template configuration file")
    print("  --show  Show current configuration")
    return EXIT_SUCCESS


def main(argv: Sequence[str] | None = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0=success, 1=runtime error, 2=request rejected)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_RUNTIME_ERROR

    # Load configuration
    try:
        config = load_runtime_config(args.config)
    except (OSError, ValueError, TypeError) as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    if args.data_dir:
        config.registry.data_dir = args.data_dir

    # Setup logging
    setup_logging(level=args.log_level or config.log_level, log_file=args.log_file)

    # Attach config to args for commands to use
    args.runtime_config = config

    debug = getattr(args, "debug", False)
    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    except RegistryException as e:
        if debug:
            traceback.print_exc()
        print_error(e, output_json=getattr(args, "json", False))
        return exit_code_for(e)
    except Exception as e:
        if debug:
            traceback.print_exc()
        else:
            print(f"Error: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR


if __name__ == "__main__":
    sys.exit(main())
