"""
Strategies for short-code generation in shortlink_platform.

Provided strategies:
- RandomStrategy: Random Base62 code of length L drawn from the OS CSPRNG

Common helpers:
- _safe_len: Resolve/normalize desired code length from argument/config (clamped to [6, 8])

Notes:
- Codes are deliberately not derived from sequential integers or from the URL:
  neighbouring codes must not reveal other users' links.
- Strategies are stateless; uniqueness is the store's job (atomic claim + retry
  in `CodeGenerator`).
"""

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from ..config import settings

BASE62_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"

MIN_CODE_LENGTH = 6
MAX_CODE_LENGTH = 8


def _safe_len(length: Optional[int]) -> int:
    """
    Resolve desired code length from arg or config, clamped to [6, 8].
    """
    L = int(length) if length is not None else int(getattr(settings, "CODE_LENGTH", 7))
    return max(MIN_CODE_LENGTH, min(MAX_CODE_LENGTH, L))


class BaseStrategy(ABC):
    """Abstract base for code generation strategies."""

    @abstractmethod
    def generate(self, *, length: Optional[int] = None) -> str:
        """Return one candidate code. Candidates may collide; callers retry."""
        raise NotImplementedError


@dataclass(frozen=True)
class RandomStrategy(BaseStrategy):
    """Random Base62 codes; rely on storage-level uniqueness (atomic claim + retry)."""

    length: Optional[int] = None
    rng: random.Random = field(default_factory=random.SystemRandom, compare=False, repr=False)

    def generate(self, *, length: Optional[int] = None) -> str:
        L = _safe_len(length if length is not None else self.length)
        return "".join(self.rng.choice(BASE62_ALPHABET) for _ in range(L))
