"""
CLI command modules.
"""

from idreg_cli.commands import identity, registry

__all__ = ["identity", "registry"]
