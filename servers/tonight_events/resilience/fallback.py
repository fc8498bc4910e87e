"""Fallback chain for extraction strategies."""

from typing import Callable, Optional, Sequence, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")


class StrategyChain:
    """Run named extraction attempts in order until one yields results.

    An attempt succeeds when it returns a non-empty sequence. Returning
    ``None`` or an empty sequence, or raising, moves on to the next attempt.
    """

    def __init__(
        self,
        *attempts: tuple[str, Callable[[], Optional[Sequence[T]]]],
        on_decision: Optional[Callable[..., None]] = None,
    ):
        """Initialize chain with ordered (name, callable) pairs.

        Args:
            *attempts: Zero-argument callables paired with a strategy name
            on_decision: Optional callback receiving (event, **fields)
        """
        self.attempts = attempts
        self.on_decision = on_decision

    def execute(self) -> tuple[list[T], Optional[str]]:
        """Execute attempts in order until one returns records.

        Returns:
            (records, strategy name) from the first successful attempt, or
            ([], None) when every attempt came back empty or failed
        """
        for i, (name, attempt) in enumerate(self.attempts):
            try:
                result = attempt()
            except Exception as e:
                self._decide(
                    "strategy_failed",
                    strategy=name,
                    attempt=i + 1,
                    total_attempts=len(self.attempts),
                    error=str(e),
                )
                continue

            if result:
                self._decide("strategy_succeeded", strategy=name, count=len(result))
                return list(result), name

            self._decide("strategy_empty", strategy=name, attempt=i + 1)

        logger.debug(
            "strategy_chain_exhausted",
            strategies=[name for name, _ in self.attempts],
        )
        return [], None

    def _decide(self, event: str, **fields) -> None:
        if self.on_decision is not None:
            self.on_decision(event, **fields)
        else:
            logger.debug(event, **fields)
