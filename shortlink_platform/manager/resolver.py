"""
RedirectResolver: turns a short code into its target URL and counts the click.

Per request:

    Lookup -> Found-Active  -> increment, emit ClickEvent, return target URL
           -> Found-Expired -> LinkExpired (no increment)
           -> NotFound      -> LinkNotFound

The lookup runs on a small thread pool and is bounded by `lookup_timeout`;
a slow or unavailable store yields a transient error, never `LinkNotFound`,
so callers do not cache a false negative.

Click recording is best-effort: the increment runs under the same deadline as
the lookup, and a slow or failed increment (any error) is logged while the
redirect still succeeds. The event is emitted only after the increment succeeded, which
keeps analytics buckets from ever exceeding `click_count`.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from datetime import datetime
from typing import Optional

from ..analytics.dispatcher import ClickDispatcher
from ..config import settings
from ..errors import LinkExpired, LinkNotFound, LookupTimeout, StoreUnavailable
from ..models import ClickEvent, ShortLink, as_utc, utcnow
from ..storage.base import BaseStorage

log = logging.getLogger("shortlink.resolver")


class RedirectResolver:
    def __init__(
        self,
        storage: BaseStorage,
        dispatcher: Optional[ClickDispatcher] = None,
        lookup_timeout: Optional[float] = None,
        max_workers: int = 16,
    ):
        self.storage = storage
        self.dispatcher = dispatcher
        self.lookup_timeout = settings.LOOKUP_TIMEOUT if lookup_timeout is None else lookup_timeout
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="lookup")

    def lookup(self, code: str) -> Optional[ShortLink]:
        """
        Fetch the link with a deadline.

        Raises:
            LookupTimeout: If the store did not answer within `lookup_timeout`.
            StoreUnavailable: If the store reported itself down.
        """
        future = self._executor.submit(self.storage.get, code)
        try:
            return future.result(timeout=self.lookup_timeout)
        except FutureTimeout:
            future.cancel()
            log.warning("Lookup for %s exceeded %.2fs", code, self.lookup_timeout)
            raise LookupTimeout(f"Lookup for {code} timed out") from None

    def resolve(self, code: str, client_timestamp: Optional[datetime] = None) -> str:
        """
        Resolve `code` and record the click.

        Args:
            code: Short code from the request path.
            client_timestamp: When the click happened (defaults to now, UTC).
                Used both for the expiry check and as the event timestamp.

        Returns:
            str: Target URL to redirect to.

        Raises:
            LinkNotFound, LinkExpired, LookupTimeout, StoreUnavailable
        """
        now = as_utc(client_timestamp) if client_timestamp else utcnow()
        link = self.lookup(code)
        if link is None:
            raise LinkNotFound(code)
        if link.is_expired(now):
            raise LinkExpired(code)

        self._record_click(code, now)
        return link.target_url

    def _record_click(self, code: str, now: datetime) -> None:
        """Never raises: the redirect goes out whether or not the click is counted."""
        future = self._executor.submit(self.storage.increment_click, code)
        try:
            future.result(timeout=self.lookup_timeout)
        except FutureTimeout:
            # The write may still land later; without an event the buckets stay <= click_count.
            log.warning("Click increment for %s exceeded %.2fs; not waiting", code, self.lookup_timeout)
            return
        except (StoreUnavailable, LinkNotFound) as exc:
            log.warning("Click not counted for %s: %s", code, exc)
            return
        except Exception:
            log.exception("Click not counted for %s", code)
            return
        if self.dispatcher is None:
            return
        try:
            self.dispatcher.submit(ClickEvent(code=code, timestamp=now))
        except Exception:
            log.exception("Click event for %s not dispatched", code)

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
