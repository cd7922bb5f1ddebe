"""
Cooperative execution budget for a drive cleaner run.

The budget is checked only between whole units of work (a root, a duplicate
folder group, a folder). Once a unit has started it always runs to the end, so
a folder is never left half-processed by an expired deadline.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

import structlog

logger = structlog.get_logger(__name__)


class ExecutionBudget:
    """
    Wall-clock deadline shared by both phases of a run.

    Args:
        limit_seconds: Budget length
        monotonic: Seconds clock (time.monotonic by default, injectable in tests)
        start: Start reading of `monotonic`; defaults to now
    """

    def __init__(
        self,
        limit_seconds: float,
        monotonic: Callable[[], float] = time.monotonic,
        start: Optional[float] = None,
    ):
        self.limit_seconds = limit_seconds
        self._monotonic = monotonic
        self.start = monotonic() if start is None else start
        self._exhausted_logged = False

    @property
    def elapsed_seconds(self) -> float:
        return self._monotonic() - self.start

    @property
    def remaining_seconds(self) -> float:
        return max(0.0, self.limit_seconds - self.elapsed_seconds)

    def within_budget(self) -> bool:
        """Return True while more work may start."""
        if self.elapsed_seconds <= self.limit_seconds:
            return True

        if not self._exhausted_logged:
            logger.info(
                "execution_budget_exhausted",
                elapsed_seconds=round(self.elapsed_seconds, 2),
                limit_seconds=self.limit_seconds,
            )
            self._exhausted_logged = True
        return False
