"""
Base storage interface for Shortlink Platform.

Purpose:
    Define a small, stable contract that multiple storage backends
    (in-memory, PostgreSQL, Redis) can implement without requiring
    changes to business logic.

    The store is the single source of truth and the only component that
    needs locking or transactional discipline:
        - `create_if_absent` is atomic per code (exactly one winner per race).
        - `increment_click` is atomic per code (no lost updates).
        - reads may lag writes but never show `click_count` going down.

Testing & Coverage:
    These are abstract methods and are not executed directly in tests.
    We annotate them with `# pragma: no cover` so coverage tools don't
    penalize the project for un-runnable abstract declarations.

LLM Prompt Example:
    "Show how a narrow, explicit storage interface enables dependency
    injection and easy backend swapping without touching service code."
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, Iterator, List, Optional

from ..models import ClickEvent, ShortLink


class BaseStorage(ABC):
    """Abstract base class for storage backends."""

    @abstractmethod  # pragma: no cover
    def create_if_absent(
        self,
        code: str,
        target_url: str,
        owner_id: Optional[str] = None,
        expires_at: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
    ) -> ShortLink:
        """
        Bind `code` to `target_url` unless the code is already bound.

        Returns:
            ShortLink: The freshly created record (click_count == 0).

        Raises:
            CodeTaken: If any record already uses `code` (no silent overwrite).
            ValidationError: If `expires_at` precedes `created_at`.

        LLM Prompt Example:
            "Design an atomic claim API that can be implemented with
            compare-and-set semantics in a distributed KV store."
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def get(self, code: str) -> Optional[ShortLink]:
        """
        Retrieve a link snapshot by its short code.

        Returns:
            Optional[ShortLink]: The record, or None when the code is unknown.
        """
        raise NotImplementedError

    def code_exists(self, code: str) -> bool:
        """True if `code` is already bound. Backends may override with a cheaper query."""
        return self.get(code) is not None

    @abstractmethod  # pragma: no cover
    def increment_click(self, code: str) -> int:
        """
        Atomically add one click to `code`.

        Returns:
            int: The new click count.

        Raises:
            LinkNotFound: If the code does not exist.

        LLM Prompt Example:
            "Explain how to make increments atomic with Redis INCR or SQL UPDATE."
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def list_by_owner(self, owner_id: str) -> List[ShortLink]:
        """Return every link created by `owner_id`, oldest first."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def append_click(self, event: ClickEvent) -> None:
        """Durably append one click event to the log."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def iter_clicks(self, codes: Iterable[str], start: datetime, end: datetime) -> Iterator[ClickEvent]:
        """
        Yield logged click events for `codes` with `start <= timestamp < end`.

        Order is unspecified; each event's own timestamp is authoritative.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def prune_clicks(self, before: datetime) -> int:
        """Delete click events older than `before`. Returns how many were removed."""
        raise NotImplementedError
