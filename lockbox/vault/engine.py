"""
VaultEngine — An unlocked vault session.

Provides the public API for the vault:
- ``VaultEngine.init(path, passphrase)`` — create a new, empty vault
- ``VaultEngine.unlock(path, passphrase)`` — unlock an existing vault
- ``create / get / update / delete / toggle_lock`` — entry operations
- ``list_entries(search, lock_filter)`` — enumerate names without decrypting
- ``close()`` — end the session and wipe the master key

Each engine owns one session. Use it as a context manager so the master key
is wiped on every exit path::

    with VaultEngine.unlock(path, passphrase) as vault:
        vault.create("email", "hunter2")

Every mutation rewrites the whole record atomically. The in-memory entry
table is only replaced after the write succeeded, so a failed write leaves
both the file and the session unchanged.

Security Note:
    Never log plaintext or ciphertext values. Only log entry names,
    counts and operations.
"""
import enum
import logging
from pathlib import Path
from typing import Iterator, NamedTuple, Optional
from dataclasses import dataclass

from ..exceptions import (
    AlreadyInitialized,
    AuthenticationError,
    CorruptVault,
    DestinationLocked,
    DuplicateEntry,
    EmptyPassphrase,
    EntryLocked,
    EntryNotFound,
    InvalidPassphrase,
    VaultNotFound,
)
from ..storage import blob_exists, read_blob, write_blob_atomically
from .config import VaultConfig
from .crypto import (
    KDF_ALGORITHM,
    derive_key,
    generate_nonce,
    generate_salt,
    open_sealed,
    seal,
    wipe,
)
from .record import VAULT_CANARY, EntryRecord, KdfParams, SealedValue, VaultRecord

logger = logging.getLogger("lockbox.vault")

MAX_NAME_LENGTH = 255


class VaultState(enum.Enum):
    LOCKED = "locked"
    UNLOCKED = "unlocked"


class LockFilter(enum.Enum):
    LOCKED = "locked"
    UNLOCKED = "unlocked"


class EntrySummary(NamedTuple):
    name: str
    locked: bool


@dataclass
class DecryptedEntry:
    """A plaintext entry held briefly during export and import.

    ``value`` is a bytearray so it can be wiped once it is no longer needed.
    """

    name: str
    value: bytearray
    locked: bool

    def wipe(self) -> None:
        wipe(self.value)


def check_passphrase(passphrase: str) -> None:
    """Reject empty or whitespace-only passphrases before any derivation."""
    if not passphrase or not passphrase.strip():
        raise EmptyPassphrase()


def _load_record(path: Path) -> VaultRecord:
    try:
        blob = read_blob(path)
    except FileNotFoundError:
        raise VaultNotFound() from None
    try:
        return VaultRecord.from_bytes(blob)
    except ValueError as err:
        logger.error("Failed to parse vault file %s: %s", path, type(err).__name__)
        raise CorruptVault() from None


class VaultEngine:
    """Unlocked vault bound to one vault file.

    The master key lives only in this object and only while the session is
    unlocked. After :meth:`close`, every operation raises
    :class:`DestinationLocked`.
    """

    def __init__(self, path: Path, record: VaultRecord, master_key: bytearray):
        self._path = Path(path)
        self._record = record
        self._key: Optional[bytearray] = master_key

    def __repr__(self) -> str:
        return (
            f"<VaultEngine [path:{self._path}, state:{self.state.value}, "
            f"entries:{len(self._record.entries)}]>"
        )

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def init(
        cls,
        path: Path,
        passphrase: str,
        config: Optional[VaultConfig] = None,
    ) -> "VaultEngine":
        """Create a new vault at ``path`` and return it unlocked.

        Args:
            path: Vault file location.
            passphrase: New master passphrase (must not be blank).
            config: Settings for the KDF work factor, salt length and cipher.

        Raises:
            AlreadyInitialized: A vault already exists at ``path``.
            EmptyPassphrase: Passphrase is blank.
            StorageError: The vault file could not be written.
        """
        config = config or VaultConfig()
        path = Path(path)
        if blob_exists(path):
            raise AlreadyInitialized()
        check_passphrase(passphrase)

        salt = generate_salt(config.salt_length)
        key = derive_key(passphrase, salt, config.kdf_iterations)
        try:
            nonce = generate_nonce()
            record = VaultRecord(
                kdf=KdfParams(
                    algorithm=KDF_ALGORITHM,
                    iterations=config.kdf_iterations,
                    salt=salt,
                ),
                cipher=config.cipher_backend,
                verification=SealedValue(
                    nonce=nonce,
                    ciphertext=seal(key, nonce, VAULT_CANARY, config.cipher_backend),
                ),
            )
            write_blob_atomically(path, record.to_bytes())
        except Exception:
            wipe(key)
            raise
        logger.info("Vault initialized at %s", path)
        return cls(path, record, key)

    @classmethod
    def unlock(
        cls,
        path: Path,
        passphrase: str,
    ) -> "VaultEngine":
        """Unlock the vault at ``path``.

        The candidate key is checked against the verification tag only;
        entries are decrypted on demand.

        Raises:
            VaultNotFound: No vault exists at ``path``.
            CorruptVault: The vault file cannot be parsed.
            EmptyPassphrase: Passphrase is blank.
            InvalidPassphrase: Wrong passphrase or tampered verification tag.
        """
        path = Path(path)
        record = _load_record(path)
        check_passphrase(passphrase)
        key = derive_key(passphrase, record.kdf.salt, record.kdf.iterations)
        try:
            canary = open_sealed(
                key,
                record.verification.nonce,
                record.verification.ciphertext,
                record.cipher,
            )
        except AuthenticationError:
            wipe(key)
            logger.warning("Failed unlock attempt for %s", path)
            raise InvalidPassphrase() from None
        try:
            if bytes(canary) != VAULT_CANARY:
                wipe(key)
                raise InvalidPassphrase()
        finally:
            wipe(canary)
        logger.info("Vault unlocked: %d entries", len(record.entries))
        return cls(path, record, key)

    @classmethod
    def verify(cls, path: Path, passphrase: str) -> bool:
        """Return True if ``passphrase`` unlocks the vault at ``path``.

        Raises:
            VaultNotFound: No vault exists at ``path``.
            CorruptVault: The vault file cannot be parsed.
        """
        try:
            engine = cls.unlock(path, passphrase)
        except (InvalidPassphrase, EmptyPassphrase):
            return False
        engine.close()
        return True

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    @property
    def path(self) -> Path:
        return self._path

    @property
    def state(self) -> VaultState:
        return VaultState.UNLOCKED if self._key is not None else VaultState.LOCKED

    @property
    def is_unlocked(self) -> bool:
        return self._key is not None

    @property
    def cipher(self) -> str:
        return self._record.cipher

    def close(self) -> None:
        """End the session: wipe the master key. Safe to call twice."""
        if self._key is not None:
            wipe(self._key)
            self._key = None
            logger.debug("Vault session closed for %s", self._path)

    def __enter__(self) -> "VaultEngine":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __del__(self):
        key = getattr(self, "_key", None)
        if key is not None:
            wipe(key)

    def _require_key(self) -> bytearray:
        if self._key is None:
            raise DestinationLocked()
        return self._key

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _validate_name(self, name: str) -> None:
        """Validate an entry name.

        Raises:
            ValueError: If name is empty or too long.
        """
        if not name:
            raise ValueError("Entry name cannot be empty")
        if len(name) > MAX_NAME_LENGTH:
            raise ValueError(f"Entry name cannot exceed {MAX_NAME_LENGTH} characters")

    def _entry(self, name: str) -> EntryRecord:
        try:
            return self._record.entries[name]
        except KeyError:
            raise EntryNotFound(name) from None

    def seal_value(self, value: bytes | bytearray, locked: bool = False) -> EntryRecord:
        """Seal ``value`` under the master key with a fresh nonce."""
        key = self._require_key()
        nonce = generate_nonce()
        return EntryRecord(
            nonce=nonce,
            ciphertext=seal(key, nonce, value, self._record.cipher),
            locked=locked,
        )

    def _open_entry(self, entry: EntryRecord) -> bytearray:
        key = self._require_key()
        try:
            return open_sealed(key, entry.nonce, entry.ciphertext, self._record.cipher)
        except AuthenticationError:
            raise CorruptVault("Entry failed authentication: vault data is corrupted") from None

    def commit(self, entries: dict[str, EntryRecord]) -> None:
        """Atomically persist ``entries`` as the new entry table.

        The session's entry table is replaced only after the write
        succeeded.

        Raises:
            StorageError: The write failed; nothing changed.
        """
        self._require_key()
        record = self._record.model_copy(update={"entries": entries})
        write_blob_atomically(self._path, record.to_bytes())
        self._record = record

    def persist(self) -> None:
        """Rewrite the current record to disk."""
        self.commit(dict(self._record.entries))

    def snapshot(self) -> dict[str, EntryRecord]:
        """Copy of the current entry table (ciphertext only)."""
        self._require_key()
        return dict(self._record.entries)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def create(self, name: str, value: str) -> None:
        """Encrypt and store a new secret.

        Raises:
            DuplicateEntry: An entry named ``name`` already exists.
        """
        self._require_key()
        self._validate_name(name)
        if name in self._record.entries:
            raise DuplicateEntry(name)
        plaintext = bytearray(value.encode("utf-8"))
        try:
            entry = self.seal_value(plaintext)
        finally:
            wipe(plaintext)
        entries = self.snapshot()
        entries[name] = entry
        self.commit(entries)
        logger.debug("Vault create: name=%s", name)

    def get(self, name: str) -> str:
        """Decrypt and return a secret.

        The caller owns the returned string and its onward handling.

        Raises:
            EntryNotFound: No entry named ``name``.
            EntryLocked: The entry is locked.
        """
        self._require_key()
        entry = self._entry(name)
        if entry.locked:
            raise EntryLocked(name)
        plaintext = self._open_entry(entry)
        try:
            return plaintext.decode("utf-8")
        finally:
            wipe(plaintext)

    def update(self, name: str, value: str) -> None:
        """Replace a secret's value, sealing it under a new nonce.

        Raises:
            EntryNotFound: No entry named ``name``.
            EntryLocked: The entry is locked.
        """
        self._require_key()
        entry = self._entry(name)
        if entry.locked:
            raise EntryLocked(name)
        plaintext = bytearray(value.encode("utf-8"))
        try:
            new_entry = self.seal_value(plaintext)
        finally:
            wipe(plaintext)
        entries = self.snapshot()
        entries[name] = new_entry
        self.commit(entries)
        logger.debug("Vault update: name=%s", name)

    def delete(self, name: str) -> None:
        """Remove an entry.

        Locked entries may be deleted: a lock protects the value from being
        read or changed, not the entry from being removed.

        Raises:
            EntryNotFound: No entry named ``name``.
        """
        self._require_key()
        self._entry(name)
        entries = self.snapshot()
        del entries[name]
        self.commit(entries)
        logger.debug("Vault delete: name=%s", name)

    def toggle_lock(self, name: str) -> bool:
        """Flip an entry's lock flag.

        Returns:
            The new lock state (True if now locked).

        Raises:
            EntryNotFound: No entry named ``name``.
        """
        self._require_key()
        entry = self._entry(name)
        entries = self.snapshot()
        entries[name] = entry.model_copy(update={"locked": not entry.locked})
        self.commit(entries)
        logger.debug("Vault toggle_lock: name=%s locked=%s", name, not entry.locked)
        return not entry.locked

    def list_entries(
        self,
        search: Optional[str] = None,
        lock_filter: Optional[LockFilter] = None,
    ) -> list[EntrySummary]:
        """List entry names with their lock status, sorted by name.

        Args:
            search: Case-insensitive substring to match against names.
            lock_filter: Keep only locked or only unlocked entries.

        Returns:
            Matching entries, lexicographically ordered by name.
        """
        self._require_key()
        needle = search.lower() if search else None
        results = []
        for name, entry in self._record.entries.items():
            if needle is not None and needle not in name.lower():
                continue
            if lock_filter is LockFilter.LOCKED and not entry.locked:
                continue
            if lock_filter is LockFilter.UNLOCKED and entry.locked:
                continue
            results.append(EntrySummary(name, entry.locked))
        results.sort(key=lambda s: s.name)
        return results

    def exists(self, name: str) -> bool:
        self._require_key()
        return name in self._record.entries

    def __contains__(self, name: object) -> bool:
        return self.exists(str(name))

    def __len__(self) -> int:
        return len(self._record.entries)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._record.entries))

    # ------------------------------------------------------------------
    # Bulk access (export / import)
    # ------------------------------------------------------------------

    def decrypt_entry(self, name: str) -> DecryptedEntry:
        """Decrypt one entry regardless of its lock flag.

        Used by export and import reconciliation only; locks are carried
        as metadata there, not enforced.
        """
        entry = self._entry(name)
        return DecryptedEntry(name, self._open_entry(entry), entry.locked)

    def decrypt_all(self) -> list[DecryptedEntry]:
        """Decrypt every entry, locked ones included, ordered by name.

        The caller must wipe the returned entries. If any entry fails to
        decrypt, those already decrypted are wiped before the error
        propagates.
        """
        self._require_key()
        decrypted: list[DecryptedEntry] = []
        try:
            for name in sorted(self._record.entries):
                decrypted.append(self.decrypt_entry(name))
        except Exception:
            for item in decrypted:
                item.wipe()
            raise
        return decrypted
