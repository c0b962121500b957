"""Lockbox Vault — Passphrase-protected secret storage at rest.

Security Note (Threat Model):
    Values are protected at rest by AES-256-GCM under a key derived from the
    master passphrase. While a session is unlocked the master key, and any
    value being read, exist in process memory. Key material and transient
    plaintext are held in bytearrays and overwritten when released, but the
    interpreter may keep copies it never exposes; a privileged attacker
    inspecting a running process is out of scope.
"""

from .config import VaultConfig
from .engine import (
    VaultEngine,
    VaultState,
    LockFilter,
    EntrySummary,
)
from .transfer import (
    ImportMode,
    ImportReport,
    build_export,
    export_vault,
    import_vault,
    import_file,
    list_exports,
)

__all__ = [
    "VaultConfig",
    "VaultEngine",
    "VaultState",
    "LockFilter",
    "EntrySummary",
    "ImportMode",
    "ImportReport",
    "build_export",
    "export_vault",
    "import_vault",
    "import_file",
    "list_exports",
]
