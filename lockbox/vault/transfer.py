"""
Vault Transfer — Encrypted export and import of vault entries.

An export file has its own salt, verification tag and key, derived from an
export passphrase that is independent of the master passphrase. Every
entry is re-encrypted under that key with a fresh nonce, so two exports of
the same vault never share ciphertext.

Import decrypts the whole export file before touching the destination, then
reconciles by entry name:

- ``merge``   — add new entries, leave matching ones untouched
- ``replace`` — add new entries, overwrite matching ones (needs confirmation)
- ``diff``    — report what would change, mutate nothing

Import is all-or-nothing: any failure before the final atomic write leaves
the destination vault exactly as it was.

Security Note:
    Plaintext exists in memory only while an entry is re-encrypted, and is
    wiped afterwards. Never log plaintext or ciphertext values.
"""
import enum
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from ..exceptions import (
    AuthenticationError,
    CorruptExportFile,
    DestinationLocked,
    InvalidPassphrase,
    StorageError,
)
from ..storage import list_blobs, read_blob, write_blob_atomically
from ..version import __title__, __version__
from .config import EXPORT_SUFFIX, VaultConfig
from .crypto import (
    KDF_ALGORITHM,
    derive_key,
    generate_nonce,
    generate_salt,
    open_sealed,
    seal,
    wipe,
)
from .engine import MAX_NAME_LENGTH, DecryptedEntry, VaultEngine, check_passphrase
from .record import (
    EXPORT_CANARY,
    EntryRecord,
    ExportEntry,
    ExportFile,
    KdfParams,
    SealedValue,
)

logger = logging.getLogger("lockbox.vault")


class ImportMode(str, enum.Enum):
    MERGE = "merge"
    REPLACE = "replace"
    DIFF = "diff"


class ImportReport(BaseModel):
    """Outcome of an import call.

    ``applied`` is True only when the destination vault was rewritten.
    ``requires_confirmation`` is set on a replace that would overwrite
    existing entries and was not confirmed; nothing is changed in that case.
    """

    mode: ImportMode
    added: list[str] = Field(default_factory=list)
    updated: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    total_in_export: int = 0
    applied: bool = False
    requires_confirmation: bool = False

    @property
    def added_count(self) -> int:
        return len(self.added)

    @property
    def updated_count(self) -> int:
        return len(self.updated)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.updated)


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

def build_export(
    engine: VaultEngine,
    passphrase: str,
    config: Optional[VaultConfig] = None,
) -> ExportFile:
    """Re-encrypt every entry of ``engine`` under a fresh export key.

    Locked entries are exported too; their lock flag travels with them.

    Args:
        engine: Unlocked source vault.
        passphrase: Export passphrase (independent of the master passphrase).
        config: Work factor, salt length and cipher for the export key.

    Returns:
        The export file model, ready for ``to_bytes()``.

    Raises:
        DestinationLocked: ``engine`` session has ended.
        EmptyPassphrase: Export passphrase is blank.
    """
    config = config or VaultConfig()
    if not engine.is_unlocked:
        raise DestinationLocked()
    check_passphrase(passphrase)

    cipher = config.cipher_backend
    decrypted: list[DecryptedEntry] = []
    export_key: Optional[bytearray] = None
    try:
        decrypted = engine.decrypt_all()
        salt = generate_salt(config.salt_length)
        export_key = derive_key(passphrase, salt, config.kdf_iterations)
        verification_nonce = generate_nonce()
        entries = []
        for item in decrypted:
            nonce = generate_nonce()
            entries.append(
                ExportEntry(
                    name=item.name,
                    nonce=nonce,
                    ciphertext=seal(export_key, nonce, item.value, cipher),
                    locked=item.locked,
                )
            )
        export = ExportFile(
            exported_at=datetime.now(timezone.utc),
            exported_from=f"{__title__} {__version__}",
            entry_count=len(entries),
            kdf=KdfParams(
                algorithm=KDF_ALGORITHM,
                iterations=config.kdf_iterations,
                salt=salt,
            ),
            cipher=cipher,
            verification=SealedValue(
                nonce=verification_nonce,
                ciphertext=seal(export_key, verification_nonce, EXPORT_CANARY, cipher),
            ),
            entries=entries,
        )
    finally:
        for item in decrypted:
            item.wipe()
        wipe(export_key)
    return export


def export_vault(
    engine: VaultEngine,
    passphrase: str,
    path: Path,
    *,
    force: bool = False,
    config: Optional[VaultConfig] = None,
) -> ExportFile:
    """Export ``engine`` to an encrypted file at ``path``.

    Raises:
        StorageError: ``path`` exists and ``force`` is False, or the write failed.
    """
    path = Path(path)
    if path.exists() and not force:
        raise StorageError(
            f"File '{path}' already exists. Use --force to overwrite"
        )
    export = build_export(engine, passphrase, config)
    write_blob_atomically(path, export.to_bytes())
    logger.info("Exported %d entries to %s", export.entry_count, path)
    return export


def list_exports(directory: Path) -> list[Path]:
    """Return the export files stored in ``directory``, sorted by name."""
    return list_blobs(directory, EXPORT_SUFFIX)


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------

def parse_export(blob: bytes) -> ExportFile:
    """Parse and structurally validate an export file.

    Raises:
        CorruptExportFile: Malformed file, unsupported version, entry count
            mismatch or duplicate names.
    """
    try:
        return ExportFile.from_bytes(blob)
    except ValueError as err:
        logger.error("Failed to parse export file: %s", type(err).__name__)
        raise CorruptExportFile() from None


def _check_imported(item: DecryptedEntry) -> None:
    """Reject entries the vault could never have produced itself."""
    if len(item.name) > MAX_NAME_LENGTH:
        raise CorruptExportFile(
            f"Entry name in export file exceeds {MAX_NAME_LENGTH} characters"
        )
    try:
        item.value.decode("utf-8")
    except UnicodeDecodeError:
        logger.error("Export entry is not valid UTF-8: name=%s", item.name)
        raise CorruptExportFile(
            f"Entry '{item.name}' in export file is not valid text"
        ) from None


def decrypt_export(export: ExportFile, passphrase: str) -> list[DecryptedEntry]:
    """Verify the export passphrase and decrypt every entry.

    Raises:
        InvalidPassphrase: The passphrase does not open the verification tag.
        CorruptExportFile: An entry failed authentication after the
            passphrase was verified, has an over-long name, or does not
            hold UTF-8 text. Nothing decrypted is returned.
    """
    check_passphrase(passphrase)
    key = derive_key(passphrase, export.kdf.salt, export.kdf.iterations)
    decrypted: list[DecryptedEntry] = []
    try:
        try:
            canary = open_sealed(
                key,
                export.verification.nonce,
                export.verification.ciphertext,
                export.cipher,
            )
        except AuthenticationError:
            raise InvalidPassphrase() from None
        matches = bytes(canary) == EXPORT_CANARY
        wipe(canary)
        if not matches:
            raise InvalidPassphrase()

        for entry in export.entries:
            try:
                value = open_sealed(key, entry.nonce, entry.ciphertext, export.cipher)
            except AuthenticationError:
                logger.error("Export entry failed authentication: name=%s", entry.name)
                raise CorruptExportFile(
                    f"Entry '{entry.name}' in export file is corrupted"
                ) from None
            decrypted.append(DecryptedEntry(entry.name, value, entry.locked))
            _check_imported(decrypted[-1])
    except Exception:
        for item in decrypted:
            item.wipe()
        raise
    finally:
        wipe(key)
    return decrypted


def _differs(engine: VaultEngine, item: DecryptedEntry) -> bool:
    """True if importing ``item`` would change the destination entry."""
    current = engine.decrypt_entry(item.name)
    try:
        return current.locked != item.locked or current.value != item.value
    finally:
        current.wipe()


def import_vault(
    engine: VaultEngine,
    blob: bytes,
    passphrase: str,
    mode: ImportMode = ImportMode.MERGE,
    *,
    confirmed: bool = False,
) -> ImportReport:
    """Reconcile an export file into the destination vault.

    Args:
        engine: Unlocked destination vault.
        blob: Raw export file content.
        passphrase: Export passphrase.
        mode: merge (default), replace or diff.
        confirmed: The user approved overwriting entries (replace only).

    Returns:
        ImportReport with added / updated / skipped entry names.

    Raises:
        DestinationLocked: ``engine`` session has ended.
        CorruptExportFile: The export file is malformed or corrupted.
        InvalidPassphrase: Wrong export passphrase.
        StorageError: The destination vault could not be written.
    """
    mode = ImportMode(mode)
    if not engine.is_unlocked:
        raise DestinationLocked()
    export = parse_export(blob)
    decrypted = decrypt_export(export, passphrase)
    report = ImportReport(mode=mode, total_in_export=len(decrypted))
    try:
        new_items = [i for i in decrypted if not engine.exists(i.name)]
        matching = [i for i in decrypted if engine.exists(i.name)]
        report.added = [i.name for i in new_items]

        if mode is ImportMode.DIFF:
            for item in matching:
                if _differs(engine, item):
                    report.updated.append(item.name)
                else:
                    report.skipped.append(item.name)
            logger.info(
                "Import diff: %d new, %d changed, %d unchanged",
                report.added_count, report.updated_count, report.skipped_count,
            )
            return report

        if mode is ImportMode.MERGE:
            report.skipped = [i.name for i in matching]
            to_write = new_items
        else:
            report.updated = [i.name for i in matching]
            if matching and not confirmed:
                report.requires_confirmation = True
                logger.info(
                    "Import replace needs confirmation: %d entries would be overwritten",
                    len(matching),
                )
                return report
            to_write = new_items + matching

        entries: dict[str, EntryRecord] = engine.snapshot()
        for item in to_write:
            entries[item.name] = engine.seal_value(item.value, locked=item.locked)
        if to_write:
            engine.commit(entries)
            report.applied = True
    finally:
        for item in decrypted:
            item.wipe()

    logger.info(
        "Import %s complete: %d added, %d updated, %d skipped",
        mode.value, report.added_count, report.updated_count, report.skipped_count,
    )
    return report


def import_file(
    engine: VaultEngine,
    path: Path,
    passphrase: str,
    mode: ImportMode = ImportMode.MERGE,
    *,
    confirmed: bool = False,
) -> ImportReport:
    """Read an export file from ``path`` and import it.

    Raises:
        StorageError: ``path`` does not exist or cannot be read.
    """
    try:
        blob = read_blob(path)
    except FileNotFoundError:
        raise StorageError(f"Export file '{path}' not found") from None
    return import_vault(engine, blob, passphrase, mode, confirmed=confirmed)
