"""
Module 09C - CLI Registry Commands

Accumulator and snapshot maintenance:
    idreg info
    idreg rebuild
    idreg reload [--snapshot-id CID]
    idreg snapshot save
    idreg snapshot show <cid>
    idreg reset --yes
"""

from __future__ import annotations

import logging
import sys
from argparse import Namespace

from idreg_cli.common import (
    EXIT_RUNTIME_ERROR,
    EXIT_SUCCESS,
    engine_for,
    print_fields,
    print_json,
)


logger = logging.getLogger(__name__)


def info_cmd(args: Namespace) -> int:
    info = engine_for(args).registry_info()
    if args.json:
        print_json({"ok": True, "info": info})
        return EXIT_SUCCESS

    records = info.pop("records")
    print_fields(info)
    print("records:")
    for status, count in records.items():
        print(f"  {status}: {count}")
    return EXIT_SUCCESS


def rebuild_cmd(args: Namespace) -> int:
    """Rebuild the accumulator from local records and publish it."""
    result = engine_for(args).rebuild_and_publish()
    if args.json:
        print_json({"ok": True, **result.to_dict()})
    else:
        print_fields(result.to_dict())
    return EXIT_SUCCESS


def reload_cmd(args: Namespace) -> int:
    """Replace local state with a stored snapshot."""
    engine = engine_for(args)
    snapshot = engine.reload_from_snapshot(args.snapshot_id)
    summary = {
        "snapshot_id": args.snapshot_id or engine.ledger.current_snapshot_id(),
        "root": str(snapshot.root),
        "leaf_count": len(snapshot.leaves),
        "record_count": len(snapshot.records),
    }
    if args.json:
        print_json({"ok": True, **summary})
    else:
        print_fields(summary)
    return EXIT_SUCCESS


def snapshot_cmd(args: Namespace) -> int:
    engine = engine_for(args)

    if args.snapshot_action == "save":
        snapshot_id = engine.save_snapshot()
        if args.json:
            print_json({"ok": True, "snapshot_id": snapshot_id})
        else:
            print(f"snapshot_id: {snapshot_id}")
        return EXIT_SUCCESS

    # show: fetch and check a snapshot without applying it
    accumulator = engine.load_snapshot_accumulator(args.snapshot_id)
    summary = {
        "snapshot_id": args.snapshot_id,
        "depth": accumulator.depth,
        "leaf_count": accumulator.leaf_count,
        "root": str(accumulator.root()),
    }
    if args.json:
        print_json({"ok": True, **summary})
    else:
        print_fields(summary)
    return EXIT_SUCCESS


def reset_cmd(args: Namespace) -> int:
    """Delete local records and the cached accumulator."""
    if not args.yes:
        print("Refusing to reset without --yes", file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    engine_for(args).reset()
    print("Local registry state removed (ledger and snapshots untouched)")
    return EXIT_SUCCESS
