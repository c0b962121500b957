"""
Vault Records — On-disk structure of vault and export files.

Both files are JSON (orjson), binary fields base64 encoded::

    VaultRecord  {version, kdf{algorithm, iterations, salt}, cipher,
                  verification{nonce, ciphertext}, entries{name: Entry}}
    ExportFile   {format_version, exported_at, exported_from, entry_count,
                  kdf, cipher, verification, entries[ExportEntry]}

Entry names and lock flags are stored in plaintext. Values are only ever
present as ciphertext.

Security Note:
    ``from_bytes`` raises ``ValueError`` (orjson decode errors and pydantic
    validation errors both derive from it) and never echoes field values.
"""
import base64
from datetime import datetime
from typing import Annotated, Any

import orjson
from pydantic import (
    BaseModel,
    BeforeValidator,
    Field,
    PlainSerializer,
    field_validator,
    model_validator,
)

from .crypto import (
    KDF_ALGORITHM,
    MIN_SALT_SIZE,
    NONCE_SIZE,
    SUPPORTED_CIPHERS,
    TAG_SIZE,
)

RECORD_VERSION = 1
EXPORT_FORMAT_VERSION = "1.0.0"

VAULT_CANARY = b"LOCKBOX_VAULT_OK"
EXPORT_CANARY = b"LOCKBOX_EXPORT_OK"


def _b64decode(value: Any) -> Any:
    if isinstance(value, str):
        return base64.b64decode(value.encode("ascii"), validate=True)
    return value


def _b64encode(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


B64Bytes = Annotated[
    bytes,
    BeforeValidator(_b64decode),
    PlainSerializer(_b64encode, return_type=str),
]


class KdfParams(BaseModel):
    """Key derivation parameters stored next to the data they protect."""

    algorithm: str = KDF_ALGORITHM
    iterations: int = Field(ge=1)
    salt: B64Bytes

    @field_validator("algorithm")
    @classmethod
    def validate_algorithm(cls, v: str) -> str:
        if v != KDF_ALGORITHM:
            raise ValueError(f"Unsupported key derivation: {v}")
        return v

    @field_validator("salt")
    @classmethod
    def validate_salt(cls, v: bytes) -> bytes:
        if len(v) < MIN_SALT_SIZE:
            raise ValueError(f"salt must be at least {MIN_SALT_SIZE} bytes")
        return v


class SealedValue(BaseModel):
    """A nonce and the ciphertext sealed under it."""

    nonce: B64Bytes
    ciphertext: B64Bytes

    @field_validator("nonce")
    @classmethod
    def validate_nonce(cls, v: bytes) -> bytes:
        if len(v) != NONCE_SIZE:
            raise ValueError(f"nonce must be exactly {NONCE_SIZE} bytes")
        return v

    @field_validator("ciphertext")
    @classmethod
    def validate_ciphertext(cls, v: bytes) -> bytes:
        if len(v) < TAG_SIZE:
            raise ValueError("ciphertext shorter than authentication tag")
        return v


class EntryRecord(SealedValue):
    """One stored secret."""

    locked: bool = False


class ExportEntry(EntryRecord):
    """One secret inside an export file."""

    name: str = Field(min_length=1)


class _SealedFile(BaseModel):
    """Fields shared by vault and export files."""

    kdf: KdfParams
    cipher: str = "aesgcm"
    verification: SealedValue

    @field_validator("cipher")
    @classmethod
    def validate_cipher(cls, v: str) -> str:
        if v not in SUPPORTED_CIPHERS:
            raise ValueError(f"Unsupported cipher backend: {v}")
        return v

    def to_bytes(self) -> bytes:
        """Serialize to indented JSON."""
        return orjson.dumps(self.model_dump(mode="json"), option=orjson.OPT_INDENT_2)

    @classmethod
    def from_bytes(cls, blob: bytes):
        """Parse and validate a serialized file.

        Raises:
            ValueError: Malformed JSON or a structural violation.
        """
        return cls.model_validate(orjson.loads(blob))


class VaultRecord(_SealedFile):
    """The persisted vault: salt, verification tag and entry table."""

    version: int = RECORD_VERSION
    entries: dict[str, EntryRecord] = Field(default_factory=dict)

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: int) -> int:
        if v != RECORD_VERSION:
            raise ValueError(f"Unsupported vault version: {v}")
        return v


class ExportFile(_SealedFile):
    """An encrypted backup with its own key material."""

    format_version: str = EXPORT_FORMAT_VERSION
    exported_at: datetime
    exported_from: str = ""
    entry_count: int = Field(ge=0)
    entries: list[ExportEntry] = Field(default_factory=list)

    @field_validator("format_version")
    @classmethod
    def validate_format_version(cls, v: str) -> str:
        if v != EXPORT_FORMAT_VERSION:
            raise ValueError(
                f"Unsupported export format version: {v} "
                f"(expected {EXPORT_FORMAT_VERSION})"
            )
        return v

    @model_validator(mode="after")
    def validate_entries(self) -> "ExportFile":
        """Ensure entry_count matches and names are unique."""
        if self.entry_count != len(self.entries):
            raise ValueError(
                f"entry_count {self.entry_count} does not match "
                f"{len(self.entries)} entries"
            )
        names = [e.name for e in self.entries]
        if len(set(names)) != len(names):
            raise ValueError("duplicate entry names in export file")
        return self
