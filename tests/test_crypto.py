"""
Tests for the vault crypto core.

Tests cover:
- Key derivation determinism and salt sensitivity
- Seal/open round trip for both cipher backends
- Tamper and wrong-key detection
- Nonce and salt generation
- In-place wiping
"""
import pytest

from lockbox.exceptions import AuthenticationError
from lockbox.vault.crypto import (
    KEY_LENGTH,
    NONCE_SIZE,
    SALT_SIZE,
    derive_key,
    generate_nonce,
    generate_salt,
    open_sealed,
    seal,
    wipe,
)

ITERATIONS = 1_000


@pytest.fixture
def key():
    return derive_key("test_password", generate_salt(), ITERATIONS)


class TestKeyDerivation:
    """Tests for derive_key."""

    def test_key_length(self, key):
        """Derived keys match the cipher key size."""
        assert len(key) == KEY_LENGTH
        assert isinstance(key, bytearray)

    def test_deterministic(self):
        """Same passphrase and salt give the same key."""
        salt = generate_salt()
        assert derive_key("pw", salt, ITERATIONS) == derive_key("pw", salt, ITERATIONS)

    def test_salt_changes_key(self):
        """Different salts give different keys."""
        assert derive_key("pw", generate_salt(), ITERATIONS) != derive_key(
            "pw", generate_salt(), ITERATIONS
        )

    def test_passphrase_changes_key(self):
        """Different passphrases give different keys."""
        salt = generate_salt()
        assert derive_key("pw1", salt, ITERATIONS) != derive_key("pw2", salt, ITERATIONS)

    def test_iterations_change_key(self):
        """The work factor is part of the derivation."""
        salt = generate_salt()
        assert derive_key("pw", salt, 1_000) != derive_key("pw", salt, 1_001)

    def test_invalid_iterations(self):
        """A non-positive work factor is rejected."""
        with pytest.raises(ValueError):
            derive_key("pw", generate_salt(), 0)


class TestAuthenticatedCipher:
    """Tests for seal / open_sealed."""

    @pytest.mark.parametrize("cipher", ["aesgcm", "chacha20"])
    @pytest.mark.parametrize("plaintext", [b"", b"hunter2", "pässwörd ✓".encode(), b"x" * 4096])
    def test_roundtrip(self, key, cipher, plaintext):
        """open(seal(p)) == p for both backends."""
        nonce = generate_nonce()
        ct = seal(key, nonce, plaintext, cipher)
        assert open_sealed(key, nonce, ct, cipher) == plaintext

    def test_ciphertext_has_tag(self, key):
        """Ciphertext is plaintext length plus a 16-byte tag."""
        ct = seal(key, generate_nonce(), b"hello")
        assert len(ct) == len(b"hello") + 16

    def test_every_bit_flip_detected(self, key):
        """Flipping any single bit makes open fail."""
        nonce = generate_nonce()
        ct = seal(key, nonce, b"top secret")
        for i in range(len(ct) * 8):
            tampered = bytearray(ct)
            tampered[i // 8] ^= 1 << (i % 8)
            with pytest.raises(AuthenticationError):
                open_sealed(key, nonce, bytes(tampered))

    def test_wrong_key_fails(self, key):
        """A different key cannot open the ciphertext."""
        nonce = generate_nonce()
        ct = seal(key, nonce, b"top secret")
        other = derive_key("other", generate_salt(), ITERATIONS)
        with pytest.raises(AuthenticationError):
            open_sealed(other, nonce, ct)

    def test_wrong_nonce_fails(self, key):
        """The nonce is bound to the ciphertext."""
        ct = seal(key, generate_nonce(), b"top secret")
        with pytest.raises(AuthenticationError):
            open_sealed(key, generate_nonce(), ct)

    def test_wrong_cipher_fails(self, key):
        """A ciphertext sealed with AES-GCM does not open as ChaCha20."""
        nonce = generate_nonce()
        ct = seal(key, nonce, b"top secret", "aesgcm")
        with pytest.raises(AuthenticationError):
            open_sealed(key, nonce, ct, "chacha20")

    def test_truncated_ciphertext(self, key):
        """Ciphertext shorter than the tag fails authentication."""
        with pytest.raises(AuthenticationError):
            open_sealed(key, generate_nonce(), b"short")

    def test_same_plaintext_different_nonce(self, key):
        """Fresh nonces give different ciphertexts for equal plaintexts."""
        assert seal(key, generate_nonce(), b"same") != seal(key, generate_nonce(), b"same")

    def test_bad_key_length(self):
        """Keys must be exactly 32 bytes."""
        with pytest.raises(ValueError):
            seal(b"short", generate_nonce(), b"data")

    def test_bad_nonce_length(self, key):
        """Nonces must be exactly 12 bytes."""
        with pytest.raises(ValueError):
            seal(key, b"123", b"data")

    def test_unknown_cipher(self, key):
        """Unsupported cipher names are rejected."""
        with pytest.raises(ValueError):
            seal(key, generate_nonce(), b"data", "rot13")


class TestRandomness:
    """Tests for salt and nonce generation."""

    def test_nonce_size(self):
        assert len(generate_nonce()) == NONCE_SIZE

    def test_salt_size(self):
        assert len(generate_salt()) == SALT_SIZE

    def test_salt_minimum(self):
        """Salts shorter than 16 bytes are refused."""
        with pytest.raises(ValueError):
            generate_salt(8)

    def test_nonces_unique(self):
        """10k random 96-bit nonces never collide in practice."""
        nonces = {generate_nonce() for _ in range(10_000)}
        assert len(nonces) == 10_000


class TestWipe:
    """Tests for wipe."""

    def test_wipe_zeroes_in_place(self):
        buf = bytearray(b"secret")
        alias = buf
        wipe(buf)
        assert alias == bytearray(6)

    def test_wipe_none_and_empty(self):
        wipe(None)
        wipe(bytearray())
