"""
Module 05D - Engine Factory

Wires a ReconciliationEngine from RuntimeConfig. Backends are chosen by
name; unknown names fail closed with ValueError.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from adapters.ledger import HttpLedger, LedgerAdapter, LocalLedger
from adapters.prover import HttpProver, Prover, ReferenceProver
from adapters.snapshot_store import (
    DirectorySnapshotStore,
    GatewaySnapshotStore,
    InMemorySnapshotStore,
    SnapshotStore,
)
from core.config.runtime import RuntimeConfig
from core.http.client import HttpClient
from core.store.record_store import LocalRecordStore
from orchestrator.engine import ReconciliationEngine


logger = logging.getLogger(__name__)


def build_http_client(config: RuntimeConfig, timeout: Optional[float] = None) -> HttpClient:
    return HttpClient(
        timeout=timeout or config.http.timeout,
        max_retries=config.http.max_retries,
        retry_delay=config.http.retry_delay,
        default_headers={"User-Agent": config.http.user_agent},
    )


def build_ledger(config: RuntimeConfig) -> LedgerAdapter:
    backend = config.ledger.backend.lower()
    if backend == "local":
        path = config.ledger.path or str(Path(config.registry.data_dir) / "ledger.json")
        return LocalLedger(path)
    if backend == "http":
        if not config.ledger.url:
            raise ValueError("ledger.url is required for the http ledger backend")
        return HttpLedger(
            config.ledger.url,
            client=build_http_client(config, config.ledger.timeout),
            api_key=config.ledger.api_key,
        )
    raise ValueError(f"Unknown ledger backend: {config.ledger.backend!r}")


def build_snapshot_store(config: RuntimeConfig) -> SnapshotStore:
    sc = config.snapshot_store
    backend = sc.backend.lower()
    if backend == "memory":
        return InMemorySnapshotStore()
    if backend == "directory":
        directory = sc.directory or str(Path(config.registry.data_dir) / "snapshots")
        return DirectorySnapshotStore(directory)
    if backend in ("pinata", "ipfs"):
        return GatewaySnapshotStore(
            gateways=sc.gateways,
            api_url=sc.api_url,
            jwt=sc.jwt,
            api_key=sc.api_key,
            secret_api_key=sc.secret_api_key,
            group_id=sc.group_id,
            gateway_timeout=sc.gateway_timeout,
            client=build_http_client(config),
        )
    raise ValueError(f"Unknown snapshot store backend: {sc.backend!r}")


def build_prover(config: RuntimeConfig) -> Prover:
    backend = config.prover.backend.lower()
    if backend == "reference":
        return ReferenceProver()
    if backend == "http":
        if not config.prover.url:
            raise ValueError("prover.url is required for the http prover backend")
        return HttpProver(
            config.prover.url,
            client=build_http_client(config, config.prover.timeout),
            api_key=config.prover.api_key,
            timeout=config.prover.timeout,
        )
    raise ValueError(f"Unknown prover backend: {config.prover.backend!r}")


def build_engine(config: RuntimeConfig) -> ReconciliationEngine:
    """Create an engine with every collaborator selected by config."""
    engine = ReconciliationEngine(
        store=LocalRecordStore(config.registry.data_dir),
        ledger=build_ledger(config),
        snapshot_store=build_snapshot_store(config),
        prover=build_prover(config),
        depth=config.registry.tree_depth,
        circuit_id=config.registry.circuit_id,
        publish_retries=config.registry.publish_retries,
    )
    logger.info(
        f"Engine ready: data_dir={config.registry.data_dir}, depth={engine.depth}, "
        f"ledger={engine.ledger.name}, snapshots={engine.snapshot_store.name}, "
        f"prover={engine.prover.name}"
    )
    return engine


__all__ = [
    "build_http_client",
    "build_ledger",
    "build_snapshot_store",
    "build_prover",
    "build_engine",
]
