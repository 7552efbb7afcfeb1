"""
ShorteningService module for Shortlink Platform.

Responsibilities:
    - Validate target URLs (absolute, http/https only) and custom codes
    - Claim random or custom codes through the store's atomic create
    - Resolve codes via the RedirectResolver
    - Serve owner-scoped link listings and click analytics

Design notes:
    - Random codes are drawn one at a time; existence collisions, reserved words
      and lost create races (`CodeTaken`) all spend one attempt budget, then
      `GenerationExhausted`.
    - Custom codes surface `CodeTaken` to the caller; no silent fallback.
    - Ownership is explicit: every owner-scoped call takes `owner_id`; resolving
      credentials to an owner is the transport layer's job.
    - Analytics failures stay in analytics: shorten/resolve never call the
      aggregator synchronously.
    - Per-owner rate limiting would sit in front of `shorten`; not provided here.

LLM Prompt Example:
    "Show how a thin facade composes a code generator, an atomic store, a
    resolver and an aggregator behind one injectable service object."
"""

import logging
from datetime import date, datetime, timedelta
from threading import Event
from typing import List, Optional, Union
from urllib.parse import urlparse

import requests

from ..analytics.aggregator import ClickAggregator
from ..analytics.dispatcher import ClickDispatcher
from ..config import settings
from ..errors import CodeTaken, GenerationExhausted, LinkNotFound, ValidationError
from ..models import DailyCount, ShortLink, as_utc, utcnow
from ..storage.base import BaseStorage
from .code_generator import CodeGenerator
from .resolver import RedirectResolver

log = logging.getLogger("shortlink.service")

ALLOWED_SCHEMES = {"http", "https"}

MAX_TTL_SECONDS = 100 * 366 * 24 * 3600
MAX_TTL = timedelta(seconds=MAX_TTL_SECONDS)

Ttl = Union[int, float, timedelta]


class ShorteningService:
    """
    Coordinates creation, resolution and analytics for short links.

    Components are injected; anything omitted is built from `settings`
    around the given storage.
    """

    def __init__(
        self,
        storage: BaseStorage,
        generator: Optional[CodeGenerator] = None,
        aggregator: Optional[ClickAggregator] = None,
        dispatcher: Optional[ClickDispatcher] = None,
        resolver: Optional[RedirectResolver] = None,
        check_reachable: Optional[bool] = None,
        max_url_length: Optional[int] = None,
    ):
        self.storage = storage
        self.generator = generator or CodeGenerator()
        self.aggregator = aggregator or ClickAggregator(storage, timeout=settings.ANALYTICS_TIMEOUT)
        self.dispatcher = dispatcher or ClickDispatcher(self.aggregator)
        self.resolver = resolver or RedirectResolver(storage, dispatcher=self.dispatcher)
        self.check_reachable = settings.CHECK_REACHABLE if check_reachable is None else check_reachable
        self.max_url_length = max_url_length or settings.MAX_URL_LENGTH

    # ---------------------------------------------------------------------
    # Validation helpers
    # ---------------------------------------------------------------------
    def validate_url(self, url: str) -> str:
        """
        Accept only absolute http/https URLs with a host.

        Rejects `javascript:`, `data:`, `ftp:` and other non-fetchable schemes
        so a short link can never be used to smuggle script into a redirect.

        Raises:
            ValidationError: If the URL is malformed or disallowed.
        """
        if not isinstance(url, str) or not url:
            raise ValidationError("Target URL is required")
        if len(url) > self.max_url_length:
            raise ValidationError(f"Target URL longer than {self.max_url_length} characters")
        if any(ch.isspace() or ord(ch) < 32 or ord(ch) == 127 for ch in url):
            raise ValidationError("Target URL must not contain whitespace or control characters")
        try:
            parsed = urlparse(url)
            hostname = parsed.hostname
            parsed.port  # raises ValueError on a malformed port
        except ValueError as exc:
            raise ValidationError(f"Invalid URL format: {exc}") from exc
        if parsed.scheme.lower() not in ALLOWED_SCHEMES:
            raise ValidationError("Invalid URL format: only http and https URLs are allowed")
        if not parsed.netloc or not hostname:
            raise ValidationError("Invalid URL format: missing host")
        return url

    def _is_reachable(self, url: str, timeout: float = 5.0) -> bool:
        """
        Best-effort link reachability check.
        Strategy:
            - Try HTTP HEAD (allow redirects). If 2xx or 3xx => reachable.
            - If HEAD is refused (403/405), retry with a streamed GET.
        """
        try:
            resp = requests.head(url, allow_redirects=True, timeout=timeout)
            if 200 <= resp.status_code < 400:
                return True
            if resp.status_code not in (403, 405):
                return False
            with requests.get(url, allow_redirects=True, timeout=timeout, stream=True) as resp:
                return 200 <= resp.status_code < 400
        except requests.RequestException as exc:
            log.info("Reachability check failed for %s: %s", url, exc)
            return False

    @staticmethod
    def _expiry(created_at: datetime, ttl: Optional[Ttl]) -> Optional[datetime]:
        if ttl is None:
            return None
        try:
            delta = ttl if isinstance(ttl, timedelta) else timedelta(seconds=ttl)
        except OverflowError as exc:
            raise ValidationError("TTL too large") from exc
        except ValueError as exc:
            raise ValidationError(f"Invalid TTL: {exc}") from exc
        if delta <= timedelta(0):
            raise ValidationError("TTL must be positive")
        # Bounded so created_at + delta stays inside datetime's range.
        if delta > MAX_TTL:
            raise ValidationError("TTL too large")
        return created_at + delta

    # ---------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------
    def shorten(
        self,
        target_url: str,
        owner_id: Optional[str] = None,
        custom_code: Optional[str] = None,
        ttl: Optional[Ttl] = None,
        check_reachable: Optional[bool] = None,
    ) -> ShortLink:
        """
        Create a short link for `target_url`.

        Args:
            target_url: Absolute http/https URL.
            owner_id: Creating account, or None for an anonymous link.
            custom_code: Requested code; validated and claimed as-is.
            ttl: Lifetime in seconds (or a timedelta); None never expires.
            check_reachable: Override the service default for the HEAD check.

        Returns:
            ShortLink: The created record.

        Raises:
            ValidationError: Bad URL, bad custom code, bad TTL, unreachable target.
            CodeTaken: Custom code already bound.
            GenerationExhausted: Random codes kept colliding.
            StoreUnavailable: Store is down; nothing was created.
        """
        self.validate_url(target_url)
        if custom_code is not None:
            self.generator.validate_custom(custom_code)
        created_at = utcnow()
        expires_at = self._expiry(created_at, ttl)

        reachable_check = self.check_reachable if check_reachable is None else check_reachable
        if reachable_check and not self._is_reachable(target_url):
            raise ValidationError("URL is not reachable (HEAD/GET failed)")

        if custom_code is not None:
            link = self.storage.create_if_absent(
                custom_code, target_url, owner_id=owner_id, expires_at=expires_at, created_at=created_at
            )
            log.info("Created custom link %s (owner=%s)", link.code, owner_id)
            return link

        # One budget shared by existence collisions and lost create races.
        for attempt in range(1, self.generator.max_attempts + 1):
            code = self.generator.candidate()
            if not self.generator.is_free(code, self.storage.code_exists):
                log.info("Code collision on draw %d/%d", attempt, self.generator.max_attempts)
                continue
            try:
                link = self.storage.create_if_absent(
                    code, target_url, owner_id=owner_id, expires_at=expires_at, created_at=created_at
                )
            except CodeTaken:
                log.info("Lost create race for %s (attempt %d)", code, attempt)
                continue
            log.info("Created link %s (owner=%s)", link.code, owner_id)
            return link
        log.error("Code generation exhausted after %d attempts", self.generator.max_attempts)
        raise GenerationExhausted(self.generator.max_attempts)

    def my_links(self, owner_id: str) -> List[ShortLink]:
        """Every link created by `owner_id`, oldest first; empty when none."""
        return self.storage.list_by_owner(owner_id)

    def resolve(self, code: str, client_timestamp: Optional[datetime] = None) -> str:
        """See `RedirectResolver.resolve`."""
        return self.resolver.resolve(code, client_timestamp)

    def get_owned(self, owner_id: str, code: str) -> ShortLink:
        """
        Raises:
            LinkNotFound: If `code` is unknown or belongs to someone else.
        """
        link = self.storage.get(code)
        if link is None or link.owner_id is None or link.owner_id != owner_id:
            raise LinkNotFound(code)
        return link

    def totals_by_owner(
        self,
        owner_id: str,
        start: date,
        end: date,
        timeout: Optional[float] = None,
        cancel: Optional[Event] = None,
    ) -> List[DailyCount]:
        return self.aggregator.totals_by_owner(owner_id, start, end, timeout=timeout, cancel=cancel)

    def totals_by_code(
        self,
        owner_id: str,
        code: str,
        start: date,
        end: date,
        timeout: Optional[float] = None,
        cancel: Optional[Event] = None,
    ) -> List[DailyCount]:
        self.get_owned(owner_id, code)
        return self.aggregator.totals_by_code(code, start, end, timeout=timeout, cancel=cancel)

    def close(self) -> None:
        """Stop background work (dispatcher worker, lookup and query pools)."""
        self.dispatcher.stop()
        self.resolver.close()
        self.aggregator.close()
