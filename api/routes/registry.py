"""
Module 09D - Registry Routes

Accumulator and snapshot maintenance:
- GET /registry-info, /current-root, /valid-root/{root}
- POST /build-tree, /snapshot/load, /snapshot/save
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends

from api.deps import get_engine
from api.models.requests import SnapshotLoadRequest
from api.models.responses import (
    PublishInfo,
    RegistryInfoResponse,
    RootResponse,
    SnapshotResponse,
    ValidRootResponse,
)
from core.schemas.canonical import decode_decimal
from core.schemas.errors import TransportError
from orchestrator.engine import ReconciliationEngine


logger = logging.getLogger(__name__)

router = APIRouter(tags=["registry"])


@router.get("/registry-info", response_model=RegistryInfoResponse)
def registry_info(engine: ReconciliationEngine = Depends(get_engine)) -> RegistryInfoResponse:
    return RegistryInfoResponse(ok=True, info=engine.registry_info())


@router.get("/current-root", response_model=RootResponse)
def current_root(engine: ReconciliationEngine = Depends(get_engine)) -> RootResponse:
    """Local cached root next to the ledger root; the ledger side may be unavailable."""
    local = engine.current_root()
    ledger_root: Optional[int] = None
    try:
        ledger_root = engine.ledger.current_root()
    except TransportError as e:
        logger.warning(f"Ledger root unavailable: {e.message}")

    return RootResponse(
        ok=True,
        local_root=str(local) if local is not None else None,
        ledger_root=str(ledger_root) if ledger_root is not None else None,
        in_sync=(local == ledger_root) if ledger_root is not None else None,
    )


@router.get("/valid-root/{root}", response_model=ValidRootResponse)
def valid_root(root: str, engine: ReconciliationEngine = Depends(get_engine)) -> ValidRootResponse:
    """Whether the ledger has ever published this root (decimal string)."""
    value = decode_decimal(root)
    return ValidRootResponse(ok=True, root=str(value), valid=engine.is_valid_root(value))


@router.post("/build-tree", response_model=PublishInfo)
def build_tree(engine: ReconciliationEngine = Depends(get_engine)) -> PublishInfo:
    """Rebuild the accumulator from local records and publish it."""
    result = engine.rebuild_and_publish()
    return PublishInfo(**result.to_dict())


@router.post("/snapshot/load", response_model=SnapshotResponse)
def load_snapshot(
    request: Optional[SnapshotLoadRequest] = Body(default=None),
    engine: ReconciliationEngine = Depends(get_engine),
) -> SnapshotResponse:
    """Replace local state with a stored snapshot (the ledger's current one by default)."""
    snapshot_id = request.snapshot_id if request else None
    snapshot = engine.reload_from_snapshot(snapshot_id)
    return SnapshotResponse(
        ok=True,
        snapshot_id=snapshot_id or engine.ledger.current_snapshot_id(),
        root=str(snapshot.root),
        leaf_count=len(snapshot.leaves),
        record_count=len(snapshot.records),
    )


@router.post("/snapshot/save", response_model=SnapshotResponse)
def save_snapshot(engine: ReconciliationEngine = Depends(get_engine)) -> SnapshotResponse:
    """Upload the current local state as a new snapshot without publishing."""
    snapshot_id = engine.save_snapshot()
    root = engine.current_root()
    return SnapshotResponse(
        ok=True,
        snapshot_id=snapshot_id,
        root=str(root) if root is not None else None,
    )
