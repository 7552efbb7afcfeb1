from .aggregator import ClickAggregator
from .base import BaseAnalytics
from .dispatcher import ClickDispatcher

__all__ = ["BaseAnalytics", "ClickAggregator", "ClickDispatcher"]
