"""
Module 09D - API Dependencies

Dependency injection for the API. One engine is shared by every
request; it serializes writes through its own rebuild lock.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from core.config.runtime import RuntimeConfig, load_runtime_config
from orchestrator.engine import ReconciliationEngine
from orchestrator.factory import build_engine

logger = logging.getLogger(__name__)

_engine: Optional[ReconciliationEngine] = None
_engine_lock = threading.Lock()


def get_runtime_config() -> RuntimeConfig:
    """Load RuntimeConfig from the default config search paths plus env overrides."""
    return load_runtime_config()


def get_engine() -> ReconciliationEngine:
    """
    Return the process-wide engine, building it on first use.

    Tests replace this dependency through ``app.dependency_overrides``.
    """
    global _engine
    if _engine is None:
        with _engine_lock:
            if _engine is None:
                _engine = build_engine(get_runtime_config())
    return _engine


def reset_engine() -> None:
    """Drop the cached engine so the next request rebuilds it from config."""
    global _engine
    with _engine_lock:
        _engine = None
