"""
Vault Crypto Core — Key derivation, authenticated encryption and key wiping.

Two primitives back every vault and export file:
- Key derivation: PBKDF2-HMAC-SHA256(passphrase, salt, iterations) → 32-byte key
- Authenticated cipher: AES-256-GCM (or ChaCha20-Poly1305) with a 96-bit nonce

Security Note:
    Never log passphrases, keys, plaintext or ciphertext values.
    Nonces are random 96-bit; collision probability negligible under normal usage.
    Keys are returned as ``bytearray`` so they can be overwritten in place
    with :func:`wipe`. Immutable copies made by the interpreter or by the
    cipher backend cannot be reached; wiping is best effort.
"""
import os
import logging

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from ..exceptions import AuthenticationError

logger = logging.getLogger("lockbox.vault")

NONCE_SIZE = 12  # 96-bit nonce
KEY_LENGTH = 32  # AES-256
TAG_SIZE = 16
SALT_SIZE = 32
MIN_SALT_SIZE = 16
DEFAULT_ITERATIONS = 100_000
KDF_ALGORITHM = "pbkdf2-sha256"

_CIPHERS = {
    "aesgcm": AESGCM,
    "chacha20": ChaCha20Poly1305,
}

SUPPORTED_CIPHERS = tuple(_CIPHERS)


def _get_cipher_cls(name: str) -> type:
    """Return the AEAD cipher class registered under ``name``."""
    try:
        return _CIPHERS[name]
    except KeyError:
        raise ValueError(f"Unsupported cipher backend: {name}") from None


# ---------------------------------------------------------------------------
# Randomness
# ---------------------------------------------------------------------------

def generate_salt(length: int = SALT_SIZE) -> bytes:
    """Generate a random salt for key derivation."""
    if length < MIN_SALT_SIZE:
        raise ValueError(f"Salt must be at least {MIN_SALT_SIZE} bytes")
    return os.urandom(length)


def generate_nonce() -> bytes:
    """Generate a fresh 96-bit nonce. Call once per seal()."""
    return os.urandom(NONCE_SIZE)


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(
    passphrase: str,
    salt: bytes,
    iterations: int = DEFAULT_ITERATIONS,
) -> bytearray:
    """Derive a 32-byte encryption key from a passphrase using PBKDF2-SHA256.

    Deterministic: the same (passphrase, salt, iterations) always yields the
    same key. The iteration count makes each call deliberately slow.

    Args:
        passphrase: User passphrase. Emptiness is checked by the caller.
        salt: Random salt stored next to the data it protects.
        iterations: PBKDF2 work factor.

    Returns:
        32-byte derived key as a mutable ``bytearray``.
    """
    if iterations < 1:
        raise ValueError("iterations must be a positive integer")
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=bytes(salt),
        iterations=iterations,
    )
    secret = bytearray(passphrase.encode("utf-8"))
    try:
        return bytearray(kdf.derive(bytes(secret)))
    finally:
        wipe(secret)


# ---------------------------------------------------------------------------
# Authenticated encryption
# ---------------------------------------------------------------------------

def _check_params(key: bytes | bytearray, nonce: bytes) -> None:
    if len(key) != KEY_LENGTH:
        raise ValueError(
            f"Invalid key length: expected {KEY_LENGTH}, got {len(key)}"
        )
    if len(nonce) != NONCE_SIZE:
        raise ValueError(
            f"Invalid nonce length: expected {NONCE_SIZE}, got {len(nonce)}"
        )


def seal(
    key: bytes | bytearray,
    nonce: bytes,
    plaintext: bytes | bytearray,
    cipher: str = "aesgcm",
) -> bytes:
    """Encrypt plaintext under (key, nonce).

    Format: [encrypted_payload + tag 16B]. The nonce is stored separately.
    Never call twice with the same (key, nonce) pair.

    Args:
        key: 32-byte key from derive_key.
        nonce: Fresh 12-byte nonce from generate_nonce.
        plaintext: Data to encrypt.
        cipher: Cipher backend name ("aesgcm" or "chacha20").

    Returns:
        Ciphertext with the authentication tag appended.
    """
    _check_params(key, nonce)
    aead = _get_cipher_cls(cipher)(bytes(key))
    return aead.encrypt(nonce, bytes(plaintext), None)


def open_sealed(
    key: bytes | bytearray,
    nonce: bytes,
    ciphertext: bytes,
    cipher: str = "aesgcm",
) -> bytearray:
    """Decrypt and authenticate a sealed ciphertext.

    Fails closed: a wrong key and a tampered ciphertext raise the same
    error, and no partial plaintext is ever returned.

    Returns:
        Decrypted plaintext as a mutable ``bytearray``.

    Raises:
        AuthenticationError: Wrong key or corrupted data.
    """
    _check_params(key, nonce)
    if len(ciphertext) < TAG_SIZE:
        raise AuthenticationError(
            f"Ciphertext too short: {len(ciphertext)} bytes (minimum {TAG_SIZE})"
        )
    aead = _get_cipher_cls(cipher)(bytes(key))
    try:
        return bytearray(aead.decrypt(nonce, ciphertext, None))
    except InvalidTag:
        raise AuthenticationError() from None


# ---------------------------------------------------------------------------
# Memory hygiene
# ---------------------------------------------------------------------------

def wipe(buffer: bytearray | None) -> None:
    """Overwrite a mutable buffer with zeros in place."""
    if buffer:
        buffer[:] = bytes(len(buffer))
