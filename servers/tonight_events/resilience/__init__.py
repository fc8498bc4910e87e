"""Resilience patterns for best-effort extraction and remote calls."""

from .fallback import StrategyChain
from .health import ExtractionObserver
from .retry import is_retryable, retry_with_backoff

__all__ = [
    "StrategyChain",
    "ExtractionObserver",
    "is_retryable",
    "retry_with_backoff",
]
