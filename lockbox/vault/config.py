"""
Vault Configuration — Validated settings and environment loading.

Reads settings from environment variables:
    LOCKBOX_HOME = <directory holding vault.json and exports/>
    LOCKBOX_KDF_ITERATIONS = <integer>
    LOCKBOX_CIPHER_BACKEND = aesgcm | chacha20
    LOCKBOX_CLIPBOARD_TIMEOUT = <seconds before a copied secret is cleared>

Security Note:
    Settings only affect newly written records. Existing vaults and export
    files carry their own salt, iteration count and cipher name.
"""
import os
import logging
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from .crypto import DEFAULT_ITERATIONS, MIN_SALT_SIZE, SALT_SIZE, SUPPORTED_CIPHERS

logger = logging.getLogger("lockbox.vault")

VAULT_FILENAME = "vault.json"
EXPORTS_DIRNAME = "exports"
EXPORT_SUFFIX = ".lbx"


def default_home() -> Path:
    """Return the default Lockbox directory (``~/.config/lockbox``)."""
    return Path.home() / ".config" / "lockbox"


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    home: Path = Field(default_factory=default_home)
    kdf_iterations: int = Field(default=DEFAULT_ITERATIONS, ge=1)
    cipher_backend: str = Field(default="aesgcm")
    salt_length: int = Field(default=SALT_SIZE, ge=MIN_SALT_SIZE)
    clipboard_timeout: int = Field(default=30, ge=0)

    @field_validator("cipher_backend")
    @classmethod
    def validate_cipher(cls, v: str) -> str:
        """Validate cipher backend is supported."""
        v = v.lower()
        if v not in SUPPORTED_CIPHERS:
            raise ValueError(f"Unsupported cipher backend: {v}")
        return v

    @property
    def vault_path(self) -> Path:
        return self.home / VAULT_FILENAME

    @property
    def exports_dir(self) -> Path:
        return self.home / EXPORTS_DIRNAME

    def export_path(self, name: str) -> Path:
        """Resolve a bare export name to a file inside the exports directory."""
        filename = name if name.endswith(EXPORT_SUFFIX) else f"{name}{EXPORT_SUFFIX}"
        return self.exports_dir / filename

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Returns:
            Populated VaultConfig instance.
        """
        values: dict = {}
        home = os.environ.get("LOCKBOX_HOME")
        if home:
            values["home"] = Path(home).expanduser()
        iterations = os.environ.get("LOCKBOX_KDF_ITERATIONS")
        if iterations:
            values["kdf_iterations"] = int(iterations)
        backend = os.environ.get("LOCKBOX_CIPHER_BACKEND")
        if backend:
            values["cipher_backend"] = backend
        timeout = os.environ.get("LOCKBOX_CLIPBOARD_TIMEOUT")
        if timeout:
            values["clipboard_timeout"] = int(timeout)
        config = cls(**values)
        logger.debug(
            "Loaded config: home=%s iterations=%d cipher=%s",
            config.home, config.kdf_iterations, config.cipher_backend,
        )
        return config
