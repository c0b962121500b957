"""Lockbox exception hierarchy.

Every error raised on purpose by the vault core derives from
:class:`VaultError`, so a front-end can catch one type and show
``str(err)`` to the user.
"""


class VaultError(Exception):
    """Base class for all vault errors."""

    message = "Vault error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)


class AuthenticationError(VaultError):
    """Authenticated decryption failed (wrong key or tampered data)."""

    message = "Authentication failed"


class InvalidPassphrase(VaultError):
    """Passphrase did not open the verification tag.

    Wrong passphrases and tampered files produce the same error.
    """

    message = "Invalid passphrase or corrupted data"


class EmptyPassphrase(VaultError):
    message = "Passphrase cannot be empty"


class VaultNotFound(VaultError):
    message = "Vault not found. Run 'lockbox init' first"


class AlreadyInitialized(VaultError):
    message = "Vault already exists"


class CorruptVault(VaultError):
    message = "Vault file is corrupted or unreadable"


class EntryNotFound(VaultError):

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Entry '{name}' not found")


class DuplicateEntry(VaultError):

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Entry '{name}' already exists")


class EntryLocked(VaultError):

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Entry '{name}' is locked")


class InvalidConfiguration(VaultError):
    message = "Invalid secret generator configuration"


class CorruptExportFile(VaultError):
    message = "Export file is corrupted or unreadable"


class DestinationLocked(VaultError):
    message = "Vault session is locked"


class StorageError(VaultError):
    """Reading or writing a file failed."""

    message = "Storage error"


class ClipboardUnavailable(VaultError):
    """No system clipboard could be reached."""

    message = "Clipboard is not available on this system"
