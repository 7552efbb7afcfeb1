"""
Error taxonomy for Shortlink Platform.

Every failure a caller can observe is a subclass of `ShortLinkError`, so the
HTTP layer can translate them with one `except` ladder:

    ValidationError      -> 422  malformed/disallowed target URL, bad custom code
    InvalidRange         -> 400  analytics window malformed or too wide
    CodeTaken            -> 409  requested code already bound
    GenerationExhausted  -> 503  random draws kept colliding; retryable
    LinkNotFound         -> 404
    LinkExpired          -> 410
    TransientError       -> 503/504  store unavailable, lookup or query timeout

`ValidationError` and `InvalidRange` also derive from `ValueError`, and
`LinkNotFound` from `LookupError`, so plain-Python callers can catch the
builtin families.
"""


class ShortLinkError(Exception):
    """Base class for all service errors."""


class ValidationError(ShortLinkError, ValueError):
    """Input rejected before touching storage. Never retried automatically."""


class InvalidRange(ShortLinkError, ValueError):
    """Analytics date range is malformed, reversed or too wide."""


class CodeTaken(ShortLinkError):
    """The short code is already bound to a link."""

    def __init__(self, code: str):
        super().__init__(f"Code already taken: {code}")
        self.code = code


class GenerationExhausted(ShortLinkError):
    """Every random candidate collided within the attempt budget."""

    def __init__(self, attempts: int):
        super().__init__(f"Could not generate a free code after {attempts} attempts")
        self.attempts = attempts


class LinkNotFound(ShortLinkError, LookupError):
    """No link is bound to the code (or it is not visible to the caller)."""

    def __init__(self, code: str):
        super().__init__(f"Link not found: {code}")
        self.code = code


class LinkExpired(ShortLinkError):
    """The link exists but its expiry has passed."""

    def __init__(self, code: str):
        super().__init__(f"Link expired: {code}")
        self.code = code


class TransientError(ShortLinkError):
    """Temporary condition; the caller may retry and must not cache the result."""


class StoreUnavailable(TransientError):
    """The storage backend could not be reached."""


class LookupTimeout(TransientError):
    """A redirect lookup did not complete in time."""


class AnalyticsTimeout(TransientError):
    """An analytics query did not complete in time."""


class QueryCancelled(TransientError):
    """An analytics query was cancelled by its caller."""
