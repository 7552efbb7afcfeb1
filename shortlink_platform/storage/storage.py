"""
Storage module for Shortlink Platform (in-memory implementation).

Responsibilities:
    - Bind short codes to target URLs with atomic claim semantics
    - Track click counts with atomic increments
    - Provide lookups by code and by owner
    - Keep the append-only click event log

Design:
    - This is an in-memory reference implementation that satisfies the BaseStorage contract.
    - One lock guards the link table and one guards the click log; every
      mutation happens under its lock, so concurrent claims of the same code
      produce exactly one winner and concurrent increments are never lost.
    - Readers receive frozen `ShortLink` snapshots, never the live record.
    - For production, replace with a DB-backed implementation (see `db_storage.py`).

LLM Prompt Example:
    "Explain how this in-memory storage can be swapped for a database-backed layer
     (Postgres/Redis) without changing the manager or API code, by adhering to a
     narrow, explicit BaseStorage interface."
"""

import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Optional

from ..errors import CodeTaken, LinkNotFound, ValidationError
from ..models import ClickEvent, ShortLink, as_utc, utcnow
from .base import BaseStorage


class Storage(BaseStorage):
    def __init__(self):
        """
        Initialize empty tables.

        Internal schema:
            self.links = { code: ShortLink }
            self.clicks = [ ClickEvent, ... ]   # append-only
        """
        self.links: Dict[str, ShortLink] = {}
        self.clicks: List[ClickEvent] = []
        self._links_lock = threading.Lock()
        self._clicks_lock = threading.Lock()

    def create_if_absent(
        self,
        code: str,
        target_url: str,
        owner_id: Optional[str] = None,
        expires_at: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
    ) -> ShortLink:
        """
        Claim `code` for `target_url`.

        Rules:
            - Empty URL is rejected.
            - An existing code is never rebound, not even to the same URL.
            - `expires_at` must not precede `created_at`.

        LLM Prompt Example:
            "Demonstrate claim semantics and how you'd enforce them with
             a primary key and INSERT ... ON CONFLICT DO NOTHING in SQL."
        """
        if not target_url:
            raise ValidationError("Target URL must not be empty")

        created = as_utc(created_at) if created_at else utcnow()
        expires = as_utc(expires_at) if expires_at else None
        if expires is not None and expires < created:
            raise ValidationError("Expiry must not precede creation time")

        link = ShortLink(
            code=code,
            target_url=target_url,
            created_at=created,
            owner_id=owner_id,
            expires_at=expires,
        )
        with self._links_lock:
            if code in self.links:
                raise CodeTaken(code)
            self.links[code] = link
        return link

    def get(self, code: str) -> Optional[ShortLink]:
        """
        Retrieve a link by its code.

        LLM Prompt Example:
            "Discuss adding a small cache layer (e.g., LRU or Redis) in front of this call
             to reduce read latency under heavy redirect traffic."
        """
        return self.links.get(code)

    def code_exists(self, code: str) -> bool:
        return code in self.links

    def increment_click(self, code: str) -> int:
        """
        Increment click count for a given code.

        The record is replaced with a new frozen snapshot under the lock,
        so a concurrent reader sees either the old or the new count.
        """
        with self._links_lock:
            link = self.links.get(code)
            if link is None:
                raise LinkNotFound(code)
            updated = replace(link, click_count=link.click_count + 1)
            self.links[code] = updated
            return updated.click_count

    def list_by_owner(self, owner_id: str) -> List[ShortLink]:
        with self._links_lock:
            owned = [link for link in self.links.values() if link.owner_id == owner_id]
        return sorted(owned, key=lambda link: link.created_at)

    def append_click(self, event: ClickEvent) -> None:
        with self._clicks_lock:
            self.clicks.append(event)

    def iter_clicks(self, codes: Iterable[str], start: datetime, end: datetime) -> Iterator[ClickEvent]:
        wanted = set(codes)
        lo, hi = as_utc(start), as_utc(end)
        with self._clicks_lock:
            snapshot = list(self.clicks)
        for event in snapshot:
            if event.code in wanted and lo <= event.timestamp < hi:
                yield event

    def prune_clicks(self, before: datetime) -> int:
        cutoff = as_utc(before)
        with self._clicks_lock:
            kept = [event for event in self.clicks if event.timestamp >= cutoff]
            removed = len(self.clicks) - len(kept)
            self.clicks = kept
        return removed
