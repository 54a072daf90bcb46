"""
Module 01 - Schemas & Canonicalization
File: canonical.py

Purpose: Deterministic serialization utilities for snapshots, ledger
payloads and local store files.

Wide numeric values (field elements, roots, salts) cross every
serialization boundary as base-10 strings. They never pass through a
native float.

CRITICAL: All outputs from this module MUST be deterministic across runs.
"""

import json
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel

from .errors import CanonicalizationException

# Canonical JSON separators - no whitespace
CANONICAL_JSON_SEPARATORS: tuple[str, str] = (",", ":")

# Integers at or beyond this magnitude are emitted as decimal strings
MAX_NATIVE_INT: int = 2**63

_DECIMAL_PATTERN = re.compile(r"^(0|[1-9][0-9]*)$")


def encode_decimal(value: int) -> str:
    """
    Encode a non-negative integer as its canonical base-10 string.

    Raises:
        CanonicalizationException: For bools, non-ints and negative values.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise CanonicalizationException(
            message=f"Expected int for decimal encoding, got {type(value).__name__}",
            details={"type": type(value).__name__},
        )
    if value < 0:
        raise CanonicalizationException(
            message="Negative values have no decimal encoding",
            details={"value": str(value)},
        )
    return str(value)


def decode_decimal(value: Any) -> int:
    """
    Decode a canonical base-10 string (or a native int) to an int.

    Leading zeros, signs, whitespace, hex and floats are all rejected so
    that every value has exactly one wire form.

    Raises:
        CanonicalizationException: If the value is not a canonical decimal.
    """
    if isinstance(value, bool):
        raise CanonicalizationException(
            message="Booleans are not valid decimal values",
            details={"value": str(value)},
        )
    if isinstance(value, int):
        if value < 0:
            raise CanonicalizationException(
                message="Negative values are not valid field elements",
                details={"value": str(value)},
            )
        return value
    if isinstance(value, str) and _DECIMAL_PATTERN.match(value):
        return int(value)
    raise CanonicalizationException(
        message=f"Not a canonical decimal string: {value!r}",
        details={"type": type(value).__name__},
    )


def ensure_utc(dt: datetime) -> datetime:
    """
    Ensure a datetime is timezone-aware and in UTC.

    Rules:
        - If naive (no tzinfo): treat as UTC
        - If aware: convert to UTC
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    else:
        return dt.astimezone(timezone.utc)


def format_datetime_canonical(dt: datetime) -> str:
    """
    Format a datetime as ISO-8601 with Z suffix for UTC.

    Returns:
        ISO-8601 formatted string with Z suffix (e.g., "2026-01-27T21:35:00Z").
    """
    utc_dt = ensure_utc(dt)
    if utc_dt.microsecond == 0:
        return utc_dt.strftime("%Y-%m-%dT%H:%M:%SZ")
    else:
        return utc_dt.strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def canonicalize_value(value: Any, path: str = "") -> Any:
    """
    Reduce a value to JSON-native types with one canonical form each.

    Ints at or above MAX_NATIVE_INT become decimal strings, datetimes
    become ISO-8601 Z strings, models and enums are dumped, None-valued
    keys are dropped and bytes become hex. Floats are refused outright:
    nothing the registry persists is fractional.
    """
    if value is None or isinstance(value, (bool, str)):
        return value

    if isinstance(value, int):
        return str(value) if abs(value) >= MAX_NATIVE_INT else value

    if isinstance(value, float):
        raise CanonicalizationException(
            message=f"Float value not allowed at '{path or '$'}': {value}",
            details={"path": path, "value": str(value)},
        )

    if isinstance(value, datetime):
        return format_datetime_canonical(value)

    if isinstance(value, Enum):
        return value.value

    if isinstance(value, BaseModel):
        return canonicalize_value(
            value.model_dump(mode="json", by_alias=True, exclude_none=True), path
        )

    if isinstance(value, dict):
        return {
            str(k): canonicalize_value(v, f"{path}.{k}" if path else str(k))
            for k, v in value.items()
            if v is not None
        }

    if isinstance(value, (list, tuple)):
        return [canonicalize_value(item, f"{path}[{i}]") for i, item in enumerate(value)]

    if isinstance(value, bytes):
        return value.hex()

    raise CanonicalizationException(
        message=f"Cannot canonicalize value of type {type(value).__name__}",
        details={"path": path, "type": type(value).__name__},
    )


def dumps_canonical(obj: Any) -> str:
    """
    Serialize to canonical JSON: sorted keys, no whitespace, UTF-8 kept.

    >>> dumps_canonical({"b": 2, "a": 2**70})
    '{"a":"1180591620717411303424","b":2}'
    """
    return json.dumps(
        canonicalize_value(obj),
        sort_keys=True,
        separators=CANONICAL_JSON_SEPARATORS,
        ensure_ascii=False,
    )


def loads_canonical(json_str: str | bytes) -> Any:
    """
    Parse a canonical JSON document.

    Float literals are refused at parse time so a wide value mistakenly
    written as a JSON number cannot silently lose precision.

    Raises:
        CanonicalizationException: On malformed JSON or float literals.
    """
    def _reject_float(literal: str) -> float:
        raise CanonicalizationException(
            message=f"Float literal not allowed in canonical JSON: {literal}",
            details={"literal": literal},
        )

    try:
        return json.loads(json_str, parse_float=_reject_float)
    except CanonicalizationException:
        raise
    except (ValueError, UnicodeDecodeError) as e:
        raise CanonicalizationException(
            message=f"Invalid JSON: {e}",
            details={"error": str(e)},
        ) from e
