"""Lockbox — a local, single-user secrets vault."""
from .version import __version__
from .exceptions import VaultError
from .generator import CharacterClass, generate, generate_default
from .vault import (
    VaultConfig,
    VaultEngine,
    VaultState,
    ImportMode,
    ImportReport,
    export_vault,
    import_vault,
)

__all__ = [
    "__version__",
    "VaultError",
    "CharacterClass",
    "generate",
    "generate_default",
    "VaultConfig",
    "VaultEngine",
    "VaultState",
    "ImportMode",
    "ImportReport",
    "export_vault",
    "import_vault",
]
