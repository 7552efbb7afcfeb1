"""
CodeGenerator: produces free short codes and validates custom ones.

Random candidates are drawn from the injected strategy and checked against an
existence callback (normally `storage.code_exists`), which is only a hint:
the authoritative check is the store's atomic `create_if_absent`, and the
facade retries within the same attempt budget when it loses that race.
"""

import logging
import re
from typing import Callable, FrozenSet, Optional

from ..config import settings
from ..errors import GenerationExhausted, ValidationError
from .strategies import BaseStrategy, RandomStrategy

log = logging.getLogger("shortlink.generator")

Base62Pattern = re.compile(r"^[0-9a-zA-Z]+$")

# Path segments served by the API itself; a code equal to one of these
# would never be reachable through GET /{code}. Applies to random draws too.
RESERVED_CODES: FrozenSet[str] = frozenset(
    {"links", "analytics", "health", "docs", "redoc", "openapi", "static", "favicon"}
)


class CodeGenerator:
    """
    Draws random codes with bounded retries.

    Args:
        strategy: Candidate source (defaults to `RandomStrategy`).
        length: Generated code length (clamped to 6..8 by the strategy).
        max_attempts: Draws allowed before raising `GenerationExhausted`.
        custom_min_length / custom_max_length: Accepted custom code lengths.
    """

    def __init__(
        self,
        strategy: Optional[BaseStrategy] = None,
        length: Optional[int] = None,
        max_attempts: Optional[int] = None,
        custom_min_length: Optional[int] = None,
        custom_max_length: Optional[int] = None,
    ):
        self.strategy = strategy or RandomStrategy()
        self.length = length if length is not None else settings.CODE_LENGTH
        self.max_attempts = max_attempts if max_attempts is not None else settings.CODE_MAX_ATTEMPTS
        self.custom_min_length = custom_min_length or settings.CUSTOM_CODE_MIN_LENGTH
        self.custom_max_length = custom_max_length or settings.CUSTOM_CODE_MAX_LENGTH

    def candidate(self) -> str:
        return self.strategy.generate(length=self.length)

    def is_free(self, code: str, exists: Callable[[str], bool]) -> bool:
        """A reserved path word counts as taken, like a stored code."""
        return code.lower() not in RESERVED_CODES and not exists(code)

    def generate(self, exists: Callable[[str], bool]) -> str:
        """
        Return the first candidate that `is_free`.

        Raises:
            GenerationExhausted: After `max_attempts` colliding draws.
        """
        for attempt in range(1, self.max_attempts + 1):
            code = self.candidate()
            if self.is_free(code, exists):
                return code
            log.info("Code collision on draw %d/%d", attempt, self.max_attempts)
        log.error("Code generation exhausted after %d attempts", self.max_attempts)
        raise GenerationExhausted(self.max_attempts)

    def validate_custom(self, code: str) -> str:
        """
        Validate a caller-requested code (charset, length, reserved words).

        Uniqueness is deliberately not checked here; the store reports `CodeTaken`.

        Raises:
            ValidationError: If the code is unusable.
        """
        if not code or not Base62Pattern.match(code):
            raise ValidationError("Custom code must contain only 0-9a-zA-Z")
        if len(code) < self.custom_min_length:
            raise ValidationError(f"Custom code must be at least {self.custom_min_length} characters")
        if len(code) > self.custom_max_length:
            raise ValidationError(f"Custom code must be at most {self.custom_max_length} characters")
        if code.lower() in RESERVED_CODES:
            raise ValidationError(f"Custom code is reserved: {code}")
        return code
