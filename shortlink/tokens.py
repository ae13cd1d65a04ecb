"""Short token generation utilities."""

import random
import string
from typing import Optional


MIN_TOKEN_LENGTH = 1
MAX_TOKEN_LENGTH = 50


class TokenGenerator:
    """Generate short tokens for URLs.

    Tokens are drawn from an internal random source and never depend on
    previously assigned tokens; callers are responsible for checking that a
    token is free before committing it.
    """

    # Base62 characters (alphanumeric, case-sensitive)
    BASE62_CHARS = string.ascii_letters + string.digits  # a-zA-Z0-9

    def __init__(self, default_length: int = 7, rng: Optional[random.Random] = None):
        """Initialize token generator.

        Args:
            default_length: Default length for generated tokens
            rng: Optional random source (a seeded one makes output reproducible)

        Raises:
            ValueError: If the length is outside the allowed range
        """
        if not MIN_TOKEN_LENGTH <= default_length <= MAX_TOKEN_LENGTH:
            raise ValueError(
                f"Token length must be between {MIN_TOKEN_LENGTH} and {MAX_TOKEN_LENGTH}"
            )
        self.default_length = default_length
        self._rng = rng or random.SystemRandom()

    @property
    def space_size(self) -> int:
        """Number of distinct tokens of the default length."""
        return len(self.BASE62_CHARS) ** self.default_length

    def generate(self, length: Optional[int] = None) -> str:
        """Generate a random token.

        Args:
            length: Length of the token (uses default if not specified)

        Returns:
            Random token
        """
        length = length or self.default_length
        return ''.join(self._rng.choices(self.BASE62_CHARS, k=length))

    @staticmethod
    def is_valid_format(token: str) -> bool:
        """Check if token has a valid format.

        Args:
            token: Token to validate

        Returns:
            True if the token is 1-50 characters of base62, '-' or '_'
        """
        if not isinstance(token, str):
            return False
        if not MIN_TOKEN_LENGTH <= len(token) <= MAX_TOKEN_LENGTH:
            return False
        return all(c in TokenGenerator.BASE62_CHARS or c in '-_' for c in token)
