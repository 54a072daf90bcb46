"""
Module 03 - Local Record Store
File: record_store.py

Purpose: Persist identity records and the cached accumulator on disk.

Layout under data_dir:
    records.json      {"schema_version": ..., "records": {subject_id: record}}
    accumulator.json  {"depth": ..., "root": ..., "leaves": [...], "updated_at": ...}

Each file is an atomic unit: read entirely before use and rewritten
entirely on change (temp file in the same directory + os.replace).
The store enforces no business rules and performs no merge; concurrent
writers must serialize through the reconciliation engine's lock.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from core.schemas.canonical import dumps_canonical, loads_canonical
from core.schemas.errors import CanonicalizationException, StoreCorruptedError
from core.schemas.identity import IdentityRecord, RecordStatus
from core.schemas.snapshot import CachedAccumulator
from core.schemas.versioning import SCHEMA_VERSION


logger = logging.getLogger(__name__)

RECORDS_FILE = "records.json"
ACCUMULATOR_FILE = "accumulator.json"


def atomic_write_text(path: Path, content: str) -> None:
    """Write content to path via a temp file and os.replace."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def _read_json(path: Path) -> Optional[Any]:
    """Read a JSON file; None if missing, StoreCorruptedError if unparsable."""
    if not path.exists():
        return None
    try:
        return loads_canonical(path.read_bytes())
    except CanonicalizationException as e:
        raise StoreCorruptedError(str(path), e.message) from e
    except OSError as e:
        raise StoreCorruptedError(str(path), str(e)) from e


class LocalRecordStore:
    """
    File-backed store for identity records and the cached accumulator.

    Purely mechanical persistence. Records are keyed by subject id.
    """

    def __init__(self, data_dir: str | Path) -> None:
        self.data_dir = Path(data_dir)
        self.records_path = self.data_dir / RECORDS_FILE
        self.accumulator_path = self.data_dir / ACCUMULATOR_FILE

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def _load_records(self) -> dict[str, IdentityRecord]:
        data = _read_json(self.records_path)
        if data is None:
            return {}
        if not isinstance(data, dict) or not isinstance(data.get("records"), dict):
            raise StoreCorruptedError(str(self.records_path), "missing 'records' mapping")

        records: dict[str, IdentityRecord] = {}
        for subject_id, raw in data["records"].items():
            try:
                record = IdentityRecord.model_validate(raw)
            except ValidationError as e:
                raise StoreCorruptedError(
                    str(self.records_path), f"invalid record '{subject_id}': {e}"
                ) from e
            if record.subject_id != subject_id:
                raise StoreCorruptedError(
                    str(self.records_path),
                    f"record key '{subject_id}' does not match subject_id '{record.subject_id}'",
                )
            records[subject_id] = record
        return records

    def _write_records(self, records: dict[str, IdentityRecord]) -> None:
        payload = {
            "schema_version": SCHEMA_VERSION,
            "records": {
                sid: rec.model_dump(mode="json") for sid, rec in records.items()
            },
        }
        atomic_write_text(self.records_path, dumps_canonical(payload))

    def get(self, subject_id: str) -> Optional[IdentityRecord]:
        return self._load_records().get(subject_id)

    def put(self, record: IdentityRecord) -> None:
        """Insert or replace one record (whole-file rewrite)."""
        records = self._load_records()
        records[record.subject_id] = record
        self._write_records(records)

    def put_many(self, records: Iterable[IdentityRecord]) -> None:
        """Insert or replace several records in a single rewrite."""
        current = self._load_records()
        for record in records:
            current[record.subject_id] = record
        self._write_records(current)

    def replace_all(self, records: Iterable[IdentityRecord]) -> None:
        """Replace the full record set (used by snapshot restore)."""
        self._write_records({r.subject_id: r for r in records})

    def all_records(self) -> list[IdentityRecord]:
        return list(self._load_records().values())

    def list_by_status(self, *statuses: RecordStatus) -> list[IdentityRecord]:
        wanted = set(statuses)
        return [r for r in self._load_records().values() if r.status in wanted]

    def find_by_commitment(self, commitment: int) -> list[IdentityRecord]:
        return [
            r for r in self._load_records().values()
            if r.identity_commitment == commitment
        ]

    # ------------------------------------------------------------------
    # Cached accumulator
    # ------------------------------------------------------------------

    def save_snapshot(self, accumulator: CachedAccumulator) -> None:
        atomic_write_text(
            self.accumulator_path,
            dumps_canonical(accumulator.model_dump(mode="json")),
        )

    def load_snapshot(self) -> Optional[CachedAccumulator]:
        data = _read_json(self.accumulator_path)
        if data is None:
            return None
        try:
            return CachedAccumulator.model_validate(data)
        except ValidationError as e:
            raise StoreCorruptedError(str(self.accumulator_path), str(e)) from e

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def clear(self) -> None:
        """Remove both files. Only used by an explicit reset."""
        for path in (self.records_path, self.accumulator_path):
            if path.exists():
                path.unlink()
                logger.info(f"Removed {path}")

    def stats(self) -> dict[str, Any]:
        records = self._load_records().values()
        by_status = {s.value: 0 for s in RecordStatus}
        for record in records:
            by_status[record.status.value] += 1
        return {
            "data_dir": str(self.data_dir),
            "total": sum(by_status.values()),
            "by_status": by_status,
        }


__all__ = [
    "atomic_write_text",
    "RECORDS_FILE",
    "ACCUMULATOR_FILE",
    "LocalRecordStore",
]
