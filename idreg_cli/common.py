"""
Module 09C - CLI Shared Helpers

Exit codes, engine construction and output helpers used by every command.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from core.config.runtime import RuntimeConfig
from core.schemas.errors import ErrorCodes, RegistryException
from core.schemas.identity import IdentityFields
from orchestrator.engine import ReconciliationEngine
from orchestrator.factory import build_engine


# Exit codes
EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_REJECTED = 2

# Errors caused by the request itself rather than by the environment
REJECTION_CODES = frozenset({
    ErrorCodes.ENCODING_ERROR,
    ErrorCodes.DUPLICATE_SUBMISSION,
    ErrorCodes.NOT_FOUND,
    ErrorCodes.INVALID_STATE,
    ErrorCodes.IDENTITY_MISMATCH,
    ErrorCodes.ROOT_MISMATCH,
    ErrorCodes.LEDGER_REJECTED,
    ErrorCodes.CAPACITY_EXCEEDED,
})


def exit_code_for(exc: RegistryException) -> int:
    return EXIT_REJECTED if exc.code in REJECTION_CODES else EXIT_RUNTIME_ERROR


def runtime_config(args: argparse.Namespace) -> RuntimeConfig:
    return args.runtime_config


def engine_for(args: argparse.Namespace) -> ReconciliationEngine:
    """Build an engine from the config attached by main()."""
    return build_engine(runtime_config(args))


def add_identity_arguments(parser: argparse.ArgumentParser) -> None:
    """Identity field options shared by submit, verify and status --identity."""
    parser.add_argument("--national-id", required=True, help="National identity number (digits)")
    parser.add_argument("--name", required=True, help="Full name")
    parser.add_argument("--birth-date", required=True, help="Birth date as digits, e.g. 19900101")
    parser.add_argument("--key", required=True, help="Subject-held secret key")


def identity_from_args(args: argparse.Namespace) -> IdentityFields:
    return IdentityFields(
        national_id=args.national_id,
        name=args.name,
        birth_date=args.birth_date,
        key=args.key,
    )


def print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def print_fields(data: dict[str, Any]) -> None:
    """Print a flat mapping as ``key: value`` lines."""
    for key, value in data.items():
        if isinstance(value, bool):
            value = str(value).lower()
        print(f"{key}: {value}")


def print_error(exc: RegistryException, output_json: bool = False) -> None:
    if output_json:
        print_json({"ok": False, "error": exc.to_error_model().model_dump()})
        return
    print(f"Error [{exc.code}]: {exc.message}", file=sys.stderr)
    for key, value in exc.details.items():
        print(f"  {key}: {value}", file=sys.stderr)
