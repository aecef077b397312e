"""
Random Secret Generator.

Draws secrets from the union of the enabled character classes using the
operating system CSPRNG. Indexes are selected by rejection sampling over
32-bit draws, so every character of the alphabet has probability
exactly ``1 / len(alphabet)``.
"""
import string
import secrets
import logging
from typing import Callable

from pydantic import BaseModel

from .exceptions import EmptyAlphabet, InvalidLength

logger = logging.getLogger("secret_vault")

UPPERCASE = string.ascii_uppercase
LOWERCASE = string.ascii_lowercase
NUMBERS = string.digits
SYMBOLS = "!@#$%^&*()_+-=[]{}|;:,.<>?"
AMBIGUOUS = frozenset("il1Lo0O")

MIN_LENGTH = 8
MAX_LENGTH = 64

_DRAW_BITS = 32
_DRAW_RANGE = 1 << _DRAW_BITS


class GenerationPolicy(BaseModel):
    """Character-class constraints for a generated secret."""

    length: int = 16
    include_uppercase: bool = True
    include_lowercase: bool = True
    include_numbers: bool = True
    include_symbols: bool = True
    exclude_ambiguous: bool = False

    model_config = {"frozen": True}


def build_alphabet(policy: GenerationPolicy) -> str:
    """Return the characters allowed by ``policy``.

    Raises:
        EmptyAlphabet: If no class is enabled or the ambiguous-character
            exclusion removes every candidate.
    """
    classes = (
        (policy.include_uppercase, UPPERCASE),
        (policy.include_lowercase, LOWERCASE),
        (policy.include_numbers, NUMBERS),
        (policy.include_symbols, SYMBOLS),
    )
    alphabet = "".join(chars for enabled, chars in classes if enabled)
    if policy.exclude_ambiguous:
        alphabet = "".join(c for c in alphabet if c not in AMBIGUOUS)
    if not alphabet:
        raise EmptyAlphabet()
    return alphabet


def unbiased_index(
    bound: int,
    randbits: Callable[[int], int] = secrets.randbits
) -> int:
    """Draw an index uniformly from ``[0, bound)``.

    Draws falling in the incomplete last block of the 32-bit range are
    rejected and redrawn instead of being reduced modulo ``bound``.
    """
    if bound <= 0 or bound > _DRAW_RANGE:
        raise ValueError(f"bound must be in 1..{_DRAW_RANGE}, got {bound}")
    limit = _DRAW_RANGE - (_DRAW_RANGE % bound)
    while True:
        value = randbits(_DRAW_BITS)
        if value < limit:
            return value % bound


def random_string(alphabet: str, length: int) -> str:
    """Return ``length`` characters drawn uniformly from ``alphabet``."""
    if not alphabet:
        raise EmptyAlphabet()
    size = len(alphabet)
    return "".join(alphabet[unbiased_index(size)] for _ in range(length))


def generate(policy: GenerationPolicy) -> str:
    """Generate a secret that satisfies ``policy``.

    Args:
        policy: Length and character-class settings.

    Returns:
        A secret of exactly ``policy.length`` characters.

    Raises:
        InvalidLength: If the length is outside ``MIN_LENGTH..MAX_LENGTH``.
        EmptyAlphabet: If the policy leaves no usable characters.
    """
    if not MIN_LENGTH <= policy.length <= MAX_LENGTH:
        raise InvalidLength(
            f"length must be between {MIN_LENGTH} and {MAX_LENGTH}, "
            f"got {policy.length}"
        )
    alphabet = build_alphabet(policy)
    logger.debug(
        "Generating secret: length=%d alphabet_size=%d",
        policy.length, len(alphabet),
    )
    return random_string(alphabet, policy.length)
