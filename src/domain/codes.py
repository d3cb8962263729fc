"""
Verification code generation.

Codes are short, human-enterable strings emailed to participants as part
of the confirmation link. Each character is drawn from one of three
alphabets chosen at random, and inserted at a random position in the
code built so far.
"""

import random
from dataclasses import dataclass, field

from .exceptions import ArgumentError

# Ambiguous glyphs (I, O, l, o, 0) are left out.
UPPERCASE = "ABCDEFGHJKLMNPQRSTUVWXYZ"
LOWERCASE = "abcdefghijkmnpqrstuvwxyz"
DIGITS = "123456789"

ALPHABETS = (UPPERCASE, LOWERCASE, DIGITS)
ALPHABET = UPPERCASE + LOWERCASE + DIGITS

DEFAULT_LENGTH = 6


@dataclass
class VerificationCodeGenerator:
    """
    Generates verification codes from an injected randomness source.

    Production code uses random.SystemRandom; tests pass a seeded
    random.Random to get deterministic codes.
    """

    rng: random.Random = field(default_factory=random.SystemRandom)
    length: int = DEFAULT_LENGTH

    def generate(self, length: int | None = None) -> str:
        """
        Generate a verification code.

        Args:
            length: Number of characters (defaults to the generator's length)

        Returns:
            Code of exactly the requested length

        Raises:
            ArgumentError: If length is less than 1
        """
        length = self.length if length is None else length
        if length < 1:
            raise ArgumentError(f"Verification code length must be positive, got {length}")

        chars: list[str] = []
        for _ in range(length):
            alphabet = self.rng.choice(ALPHABETS)
            chars.insert(self.rng.randint(0, len(chars)), self.rng.choice(alphabet))
        return "".join(chars)
