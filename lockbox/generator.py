"""
Secret Generator — Cryptographically strong random passwords.

For each output position a character class is drawn uniformly from the
enabled classes, then a character is drawn uniformly from that class's
alphabet. Both draws use :mod:`secrets`, whose ``choice`` samples by
rejection and therefore has no modulo bias.

Inclusion policy: an enabled class is *likely*, not guaranteed, to appear in
the output. For a 16-character password with all four classes the chance
that a given class is missing is (3/4)**16, about 1%.
"""
import enum
import secrets
import logging
import string
from typing import Iterable, Optional

from .exceptions import InvalidConfiguration

logger = logging.getLogger("lockbox")

DEFAULT_LENGTH = 16


class CharacterClass(enum.Enum):
    """A fixed character class; each member owns its alphabet."""

    LOWERCASE = string.ascii_lowercase
    UPPERCASE = string.ascii_uppercase
    DIGIT = string.digits
    SYMBOL = "!@#$%^&*()_+-=[]{}|;:,.<>?"

    @property
    def alphabet(self) -> str:
        return self.value


ALL_CLASSES = frozenset(CharacterClass)


def build_charset(classes: Iterable[CharacterClass]) -> str:
    """Concatenate the alphabets of ``classes`` in declaration order."""
    selected = set(classes)
    return "".join(c.alphabet for c in CharacterClass if c in selected)


def generate(
    length: int = DEFAULT_LENGTH,
    classes: Optional[Iterable[CharacterClass]] = None,
) -> str:
    """Generate a random secret.

    Args:
        length: Number of characters, at least 1.
        classes: Enabled character classes. ``None`` enables all of them;
            an empty collection is a configuration error.

    Returns:
        The generated secret.

    Raises:
        InvalidConfiguration: ``length`` < 1 or no class enabled.
    """
    if length < 1:
        raise InvalidConfiguration("Password length must be greater than 0")
    enabled = ALL_CLASSES if classes is None else frozenset(classes)
    if not enabled:
        raise InvalidConfiguration("At least one character type must be selected")
    # declaration order, so selection does not depend on set iteration order
    pools = [c for c in CharacterClass if c in enabled]
    logger.debug(
        "Generating secret: length=%d classes=%s",
        length, [c.name.lower() for c in pools],
    )
    return "".join(
        secrets.choice(secrets.choice(pools).alphabet) for _ in range(length)
    )


def generate_default() -> str:
    """Generate a 16-character secret using every character class."""
    return generate(DEFAULT_LENGTH)
