"""
Tests for the secret generator.

Tests cover:
- Length and alphabet membership
- Class selection and configuration errors
- Default generation
"""
import string

import pytest

from lockbox.exceptions import InvalidConfiguration
from lockbox.generator import (
    ALL_CLASSES,
    DEFAULT_LENGTH,
    CharacterClass,
    build_charset,
    generate,
    generate_default,
)


class TestGenerate:
    """Tests for generate()."""

    @pytest.mark.parametrize("length", [1, 8, 16, 64, 256])
    def test_length(self, length):
        assert len(generate(length)) == length

    def test_all_characters_in_alphabet(self):
        alphabet = set(build_charset(ALL_CLASSES))
        for _ in range(50):
            assert set(generate(32)) <= alphabet

    @pytest.mark.parametrize("cls", list(CharacterClass))
    def test_single_class(self, cls):
        """With one class enabled, every character comes from it."""
        secret = generate(64, {cls})
        assert set(secret) <= set(cls.alphabet)

    def test_digits_only(self):
        assert generate(20, [CharacterClass.DIGIT]).isdigit()

    def test_excluded_class_never_appears(self):
        secret = generate(200, {CharacterClass.LOWERCASE, CharacterClass.DIGIT})
        assert not set(secret) & set(string.ascii_uppercase)
        assert not set(secret) & set(CharacterClass.SYMBOL.alphabet)

    def test_outputs_differ(self):
        """Consecutive secrets are independent draws."""
        assert len({generate(24) for _ in range(20)}) == 20

    def test_zero_length(self):
        with pytest.raises(InvalidConfiguration):
            generate(0)

    def test_negative_length(self):
        with pytest.raises(InvalidConfiguration):
            generate(-5)

    def test_no_classes(self):
        """An empty class set is a configuration error."""
        with pytest.raises(InvalidConfiguration):
            generate(16, set())


class TestDefaults:
    """Tests for defaults and the charset helper."""

    def test_generate_default(self):
        secret = generate_default()
        assert len(secret) == DEFAULT_LENGTH == 16
        assert set(secret) <= set(build_charset(ALL_CLASSES))

    def test_build_charset_order(self):
        charset = build_charset([CharacterClass.DIGIT, CharacterClass.LOWERCASE])
        assert charset == string.ascii_lowercase + string.digits

    def test_symbol_alphabet(self):
        assert CharacterClass.SYMBOL.alphabet == "!@#$%^&*()_+-=[]{}|;:,.<>?"
