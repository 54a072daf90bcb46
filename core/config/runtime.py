"""
Runtime Configuration

Central configuration for the registry engine, its remote collaborators
(ledger, snapshot store, prover) and service setup.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Optional
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# Environment variable prefix
ENV_PREFIX = "IDREG_"

DEFAULT_GATEWAYS: tuple[str, ...] = (
    "https://gateway.pinata.cloud/ipfs/",
    "https://ipfs.io/ipfs/",
    "https://dweb.link/ipfs/",
    "https://cloudflare-ipfs.com/ipfs/",
)


@dataclass
class RegistryConfig:
    """Configuration for the registry engine itself."""
    data_dir: str = ".idreg"
    tree_depth: int = 16
    circuit_id: str = "identity_merkle"
    publish_retries: int = 2


@dataclass
class LedgerConfig:
    """Configuration for the ledger adapter."""
    backend: str = "local"  # "local" or "http"
    path: Optional[str] = None  # local backend persistence file
    url: Optional[str] = None
    api_key: Optional[str] = None
    timeout: float = 30.0


@dataclass
class SnapshotStoreConfig:
    """Configuration for the content-addressed snapshot store."""
    backend: str = "directory"  # "memory", "directory" or "pinata"
    directory: Optional[str] = None
    api_url: str = "https://api.pinata.cloud"
    jwt: Optional[str] = None
    api_key: Optional[str] = None
    secret_api_key: Optional[str] = None
    group_id: Optional[str] = None
    gateways: list[str] = field(default_factory=lambda: list(DEFAULT_GATEWAYS))
    gateway_timeout: float = 10.0


@dataclass
class ProverConfig:
    """Configuration for the proving service."""
    backend: str = "reference"  # "reference" or "http"
    url: Optional[str] = None
    api_key: Optional[str] = None
    timeout: float = 120.0


@dataclass
class HttpConfig:
    """Configuration for HTTP client."""
    timeout: float = 30.0
    max_retries: int = 3
    retry_delay: float = 1.0
    user_agent: str = "idreg/0.1"


@dataclass
class RuntimeConfig:
    """
    Complete runtime configuration for the identity registry.

    Can be loaded from:
    - Environment variables
    - YAML or JSON file
    - Programmatic construction
    """
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    snapshot_store: SnapshotStoreConfig = field(default_factory=SnapshotStoreConfig)
    prover: ProverConfig = field(default_factory=ProverConfig)
    http: HttpConfig = field(default_factory=HttpConfig)
    log_level: str = "INFO"
    extra: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def _get_env_overrides() -> dict[str, Any]:
        """
        Get configuration overrides from environment variables.

        This is the SINGLE source of truth for all env var reading.

        Supported variables:
        - IDREG_DATA_DIR, IDREG_TREE_DEPTH, IDREG_CIRCUIT_ID, IDREG_PUBLISH_RETRIES
        - IDREG_LEDGER_BACKEND, IDREG_LEDGER_PATH, IDREG_LEDGER_URL, IDREG_LEDGER_API_KEY
        - IDREG_SNAPSHOT_BACKEND, IDREG_SNAPSHOT_DIR, IDREG_IPFS_GATEWAYS (comma-separated)
        - PINATA_JWT, PINATA_API_KEY, PINATA_SECRET_API_KEY
        - IDREG_PROVER_BACKEND, IDREG_PROVER_URL, IDREG_PROVER_API_KEY
        - IDREG_HTTP_TIMEOUT, IDREG_HTTP_MAX_RETRIES
        - IDREG_LOG_LEVEL
        """
        overrides: dict[str, Any] = {}

        def _set(section: str, key: str, env_var: str, cast: Any = str) -> None:
            value = os.getenv(env_var)
            if value:
                overrides.setdefault(section, {})[key] = cast(value)

        # Registry settings
        _set("registry", "data_dir", f"{ENV_PREFIX}DATA_DIR")
        _set("registry", "tree_depth", f"{ENV_PREFIX}TREE_DEPTH", int)
        _set("registry", "circuit_id", f"{ENV_PREFIX}CIRCUIT_ID")
        _set("registry", "publish_retries", f"{ENV_PREFIX}PUBLISH_RETRIES", int)

        # Ledger
        _set("ledger", "backend", f"{ENV_PREFIX}LEDGER_BACKEND")
        _set("ledger", "path", f"{ENV_PREFIX}LEDGER_PATH")
        _set("ledger", "url", f"{ENV_PREFIX}LEDGER_URL")
        _set("ledger", "api_key", f"{ENV_PREFIX}LEDGER_API_KEY")

        # Snapshot store
        _set("snapshot_store", "backend", f"{ENV_PREFIX}SNAPSHOT_BACKEND")
        _set("snapshot_store", "directory", f"{ENV_PREFIX}SNAPSHOT_DIR")
        _set(
            "snapshot_store", "gateways", f"{ENV_PREFIX}IPFS_GATEWAYS",
            lambda v: [g.strip() for g in v.split(",") if g.strip()],
        )
        _set("snapshot_store", "jwt", "PINATA_JWT")
        _set("snapshot_store", "api_key", "PINATA_API_KEY")
        _set("snapshot_store", "secret_api_key", "PINATA_SECRET_API_KEY")

        # Prover
        _set("prover", "backend", f"{ENV_PREFIX}PROVER_BACKEND")
        _set("prover", "url", f"{ENV_PREFIX}PROVER_URL")
        _set("prover", "api_key", f"{ENV_PREFIX}PROVER_API_KEY")

        # HTTP
        _set("http", "timeout", f"{ENV_PREFIX}HTTP_TIMEOUT", float)
        _set("http", "max_retries", f"{ENV_PREFIX}HTTP_MAX_RETRIES", int)

        if os.getenv(f"{ENV_PREFIX}LOG_LEVEL"):
            overrides["log_level"] = os.getenv(f"{ENV_PREFIX}LOG_LEVEL", "INFO").upper()

        return overrides

    @classmethod
    def from_env(cls) -> "RuntimeConfig":
        """
        Load configuration purely from environment variables.

        Uses defaults for any values not specified in env vars.
        """
        overrides = cls._get_env_overrides()
        return cls.from_dict(overrides)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "RuntimeConfig":
        """Load configuration from a YAML file."""
        import yaml
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data or {})

    @classmethod
    def from_json(cls, path: str | Path) -> "RuntimeConfig":
        """Load configuration from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = json.load(f)

        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: str | Path) -> "RuntimeConfig":
        """Load from YAML or JSON depending on the file suffix."""
        if Path(path).suffix.lower() in (".yaml", ".yml"):
            return cls.from_yaml(path)
        return cls.from_json(path)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RuntimeConfig":
        """Load configuration from a dictionary (supports partial data)."""
        registry_data = data.get("registry", {})
        ledger_data = data.get("ledger", {})
        snapshot_data = data.get("snapshot_store", {})
        prover_data = data.get("prover", {})
        http_data = data.get("http", {})

        registry = RegistryConfig(**registry_data) if registry_data else RegistryConfig()
        ledger = LedgerConfig(**ledger_data) if ledger_data else LedgerConfig()
        snapshot_store = (
            SnapshotStoreConfig(**snapshot_data) if snapshot_data else SnapshotStoreConfig()
        )
        prover = ProverConfig(**prover_data) if prover_data else ProverConfig()
        http = HttpConfig(**http_data) if http_data else HttpConfig()

        return cls(
            registry=registry,
            ledger=ledger,
            snapshot_store=snapshot_store,
            prover=prover,
            http=http,
            log_level=str(data.get("log_level", "INFO")).upper(),
            extra=data.get("extra", {}),
        )

    def with_env_overrides(self) -> "RuntimeConfig":
        """
        Return a new config with environment variable overrides applied.

        This allows loading from a config file first, then overlaying env vars.
        """
        overrides = self._get_env_overrides()
        if not overrides:
            return self

        new_config = copy.deepcopy(self)
        for section in ("registry", "ledger", "snapshot_store", "prover", "http"):
            for key, value in overrides.get(section, {}).items():
                setattr(getattr(new_config, section), key, value)

        if "log_level" in overrides:
            new_config.log_level = overrides["log_level"]

        return new_config

    def to_dict(self, *, redact: bool = True) -> dict[str, Any]:
        """Convert configuration to a dictionary; secrets are masked by default."""

        def _secret(value: Optional[str]) -> Optional[str]:
            if value is None or not redact:
                return value
            return "***"

        return {
            "registry": {
                "data_dir": self.registry.data_dir,
                "tree_depth": self.registry.tree_depth,
                "circuit_id": self.registry.circuit_id,
                "publish_retries": self.registry.publish_retries,
            },
            "ledger": {
                "backend": self.ledger.backend,
                "path": self.ledger.path,
                "url": self.ledger.url,
                "api_key": _secret(self.ledger.api_key),
                "timeout": self.ledger.timeout,
            },
            "snapshot_store": {
                "backend": self.snapshot_store.backend,
                "directory": self.snapshot_store.directory,
                "api_url": self.snapshot_store.api_url,
                "jwt": _secret(self.snapshot_store.jwt),
                "api_key": _secret(self.snapshot_store.api_key),
                "secret_api_key": _secret(self.snapshot_store.secret_api_key),
                "group_id": self.snapshot_store.group_id,
                "gateways": list(self.snapshot_store.gateways),
                "gateway_timeout": self.snapshot_store.gateway_timeout,
            },
            "prover": {
                "backend": self.prover.backend,
                "url": self.prover.url,
                "api_key": _secret(self.prover.api_key),
                "timeout": self.prover.timeout,
            },
            "http": {
                "timeout": self.http.timeout,
                "max_retries": self.http.max_retries,
                "retry_delay": self.http.retry_delay,
                "user_agent": self.http.user_agent,
            },
            "log_level": self.log_level,
            "extra": self.extra,
        }


def config_search_paths() -> list[Path]:
    """Default config file locations, in priority order."""
    return [
        Path.cwd() / "idreg.json",
        Path.cwd() / ".idreg.json",
        Path.home() / ".config" / "idreg" / "config.json",
    ]


def load_runtime_config(config_path: str | Path | None = None) -> RuntimeConfig:
    """Load RuntimeConfig from a config file, then overlay environment variables.

    With no explicit path the default search paths are tried in order.
    Environment variables ALWAYS override config file values.
    The .env file is loaded automatically on import of this module.
    """
    config: RuntimeConfig | None = None

    if config_path is not None:
        config = RuntimeConfig.from_file(config_path)
        logger.info(f"Loaded config from {config_path}")
    else:
        for path in config_search_paths():
            if path.exists():
                try:
                    config = RuntimeConfig.from_file(path)
                    logger.info(f"Loaded config from {path}")
                    break
                except (OSError, ValueError, TypeError) as e:
                    logger.warning(f"Failed to parse {path}: {e}")

    if config is None:
        config = RuntimeConfig()

    return config.with_env_overrides()


def get_default_config_template() -> str:
    """Get a template configuration file."""
    return json.dumps(RuntimeConfig().to_dict(redact=False), indent=2) + "\n"


# Global default configuration
_default_config: Optional[RuntimeConfig] = None


def get_default_config() -> RuntimeConfig:
    """Get the default runtime configuration."""
    global _default_config
    if _default_config is None:
        _default_config = RuntimeConfig.from_env()
    return _default_config


def set_default_config(config: RuntimeConfig) -> None:
    """Set the default runtime configuration."""
    global _default_config
    _default_config = config
