"""
Abstract Base Class for Analytics Backends.

Responsibilities:
    - Define required methods for any analytics implementation
    - Support easy substitution (e.g., raw-log recompute, pre-aggregated counters,
      external metrics store)

Every implementation must return dense, chronologically ordered day series and
must never report more clicks for a code than its `click_count`.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import List

from ..models import ClickEvent, DailyCount

__all__ = ["BaseAnalytics"]


class BaseAnalytics(ABC):
    """Abstract base for pluggable analytics backends."""

    @abstractmethod
    def record_click(self, event: ClickEvent) -> None:  # pragma: no cover
        """
        Ingest one click event.

        Args:
            event (ClickEvent): The redirect that just happened.
        """
        raise NotImplementedError

    @abstractmethod
    def totals_by_code(self, code: str, start: date, end: date) -> List[DailyCount]:  # pragma: no cover
        """
        Daily click totals for one code, one entry per UTC day in [start, end].
        """
        raise NotImplementedError

    @abstractmethod
    def totals_by_owner(self, owner_id: str, start: date, end: date) -> List[DailyCount]:  # pragma: no cover
        """
        Daily click totals summed over every link of `owner_id`.
        """
        raise NotImplementedError
