"""Cooperative cancellation tokens for harvest runs.

The harvester asks its token once per page, so cancellation latency is at
most one page fetch (including its retries).
"""

from typing import Awaitable, Callable, List, Optional


class CancellationToken:
    """A cancellation flag that can also consult external signals."""

    def __init__(self, checks: Optional[List[Callable[[], Awaitable[bool]]]] = None):
        self._cancelled = False
        self._reason: Optional[str] = None
        self._checks = list(checks or [])

    def cancel(self, reason: str = "cancelled") -> None:
        self._cancelled = True
        self._reason = self._reason or reason

    def add_check(self, check: Callable[[], Awaitable[bool]]) -> None:
        """Register an async predicate that reports external cancellation."""
        self._checks.append(check)

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    @property
    def cancelled(self) -> bool:
        """Local flag only; use ``is_cancelled`` to also poll external checks."""
        return self._cancelled

    async def is_cancelled(self) -> bool:
        if self._cancelled:
            return True
        for check in self._checks:
            if await check():
                self.cancel("external cancellation")
                return True
        return False
