"""
Runtime Configuration Module

Provides configuration loading and management for the identity registry.
"""

from .runtime import (
    HttpConfig,
    LedgerConfig,
    ProverConfig,
    RegistryConfig,
    RuntimeConfig,
    SnapshotStoreConfig,
    config_search_paths,
    get_default_config,
    get_default_config_template,
    load_runtime_config,
    set_default_config,
)

__all__ = [
    "HttpConfig",
    "LedgerConfig",
    "ProverConfig",
    "RegistryConfig",
    "RuntimeConfig",
    "SnapshotStoreConfig",
    "config_search_paths",
    "get_default_config",
    "get_default_config_template",
    "load_runtime_config",
    "set_default_config",
]
