"""
Module 09C - CLI Identity Commands

Subject lifecycle:
    idreg submit <subject_id> --national-id N --name NAME --birth-date D --key K
    idreg approve <subject_id>
    idreg verify <subject_id> --national-id N --name NAME --birth-date D --key K
    idreg revoke <subject_id> [--reason TEXT]
    idreg status <subject_id>
    idreg pending
"""

from __future__ import annotations

import logging
from argparse import Namespace

from idreg_cli.common import (
    EXIT_SUCCESS,
    engine_for,
    identity_from_args,
    print_fields,
    print_json,
)
from orchestrator.engine import RegistryUpdate


logger = logging.getLogger(__name__)


def _print_update(update: RegistryUpdate, output_json: bool) -> None:
    if output_json:
        print_json({
            "ok": True,
            "record": update.record.public_view(),
            "publish": update.publish.to_dict(),
        })
        return
    print_fields({
        "subject_id": update.record.subject_id,
        "status": update.record.status.value,
        "leaf_index": update.record.leaf_index,
        "root": update.publish.root,
        "snapshot_id": update.publish.snapshot_id,
        "tx_ref": update.publish.tx_ref or "(confirmed by ledger read)",
    })


def submit_cmd(args: Namespace) -> int:
    engine = engine_for(args)
    record = engine.submit(args.subject_id, identity_from_args(args))
    if args.json:
        print_json({"ok": True, "record": record.public_view()})
    else:
        print_fields({
            "subject_id": record.subject_id,
            "status": record.status.value,
            "identity_commitment": record.identity_commitment,
        })
    return EXIT_SUCCESS


def approve_cmd(args: Namespace) -> int:
    engine = engine_for(args)
    _print_update(engine.approve(args.subject_id), args.json)
    return EXIT_SUCCESS


def verify_cmd(args: Namespace) -> int:
    """Prove membership and submit the proof to the ledger."""
    engine = engine_for(args)
    outcome = engine.verify(args.subject_id, identity_from_args(args))
    if args.json:
        print_json({"ok": True, **outcome.to_dict()})
    else:
        print_fields(outcome.to_dict())
    return EXIT_SUCCESS


def revoke_cmd(args: Namespace) -> int:
    engine = engine_for(args)
    _print_update(engine.revoke(args.subject_id, args.reason), args.json)
    return EXIT_SUCCESS


def status_cmd(args: Namespace) -> int:
    engine = engine_for(args)
    record = engine.get_record(args.subject_id)
    view = record.public_view()
    view["approved"] = engine.is_approved(args.subject_id)
    if args.json:
        print_json({"ok": True, "record": view})
    else:
        print_fields(view)
    return EXIT_SUCCESS


def pending_cmd(args: Namespace) -> int:
    engine = engine_for(args)
    records = engine.pending_records()
    if args.json:
        print_json({
            "ok": True,
            "count": len(records),
            "records": [r.public_view() for r in records],
        })
        return EXIT_SUCCESS

    if not records:
        print("No pending records")
        return EXIT_SUCCESS
    print(f"pending ({len(records)}):")
    for record in records:
        print(f"  - {record.subject_id} (submitted {record.submitted_at.isoformat()})")
    return EXIT_SUCCESS
