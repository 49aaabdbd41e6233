"""
Claim Number Generator.

Turns the database sequence of a claim into a short, non-sequential looking
public number such as RECL_7KX2PQ9M, using hashids.
Source: https://github.com/davidaurelio/hashids-python
"""

from typing import Optional

from hashids import Hashids

from src.core.config import ClaimsSettings, get_claims_settings
from src.core.exceptions import ValidationError
from src.utils.logging import get_logger

logger = get_logger(__name__)


class ClaimNumberGenerator:
    """Encodes and decodes claim numbers with an explicit salt."""

    def __init__(
        self,
        salt: str,
        min_length: int = 8,
        alphabet: str = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789",
        prefix: str = "RECL_",
    ):
        if not salt:
            raise ValidationError("Claim number salt must not be empty")
        self.prefix = prefix
        self._hashids = Hashids(salt=salt, min_length=min_length, alphabet=alphabet)

    @classmethod
    def from_settings(cls, settings: Optional[ClaimsSettings] = None) -> "ClaimNumberGenerator":
        """
        Build a generator from ClaimsSettings.

        Raises:
            ValidationError: If production still uses the development salt
        """
        settings = settings or get_claims_settings()
        if settings.uses_default_salt:
            if settings.is_production:
                raise ValidationError("CLAIMS_CLAIM_NUMBER_SALT must be set in production")
            logger.warning("Claim numbers use the development fallback salt")
        return cls(
            salt=settings.CLAIM_NUMBER_SALT,
            min_length=settings.CLAIM_NUMBER_MIN_LENGTH,
            alphabet=settings.CLAIM_NUMBER_ALPHABET,
            prefix=settings.CLAIM_NUMBER_PREFIX,
        )

    def encode(self, sequence: int) -> str:
        """
        Encode a claim sequence.

        Raises:
            ValidationError: If sequence is not a non-negative integer
        """
        if isinstance(sequence, bool) or not isinstance(sequence, int) or sequence < 0:
            raise ValidationError(f"Claim sequence must be a non-negative integer, got {sequence!r}")
        return f"{self.prefix}{self._hashids.encode(sequence)}"

    def decode(self, claim_number: str) -> Optional[int]:
        """Recover the sequence, or None if the number was not produced by this generator."""
        if not claim_number.startswith(self.prefix):
            return None
        values = self._hashids.decode(claim_number[len(self.prefix):])
        if len(values) != 1:
            return None
        return values[0]
