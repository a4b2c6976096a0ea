"""Top-level resubmission policy for bundle confirmation.

The default policy is unbounded: a launch with only some of its buys landed
is worse than waiting longer. Bounded attempts, backoff and an external
cancel signal are opt-in.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, TypeVar

from loguru import logger

from pumpbundler.protocol.exceptions import RetryCancelledError, RetryExhaustedError

if TYPE_CHECKING:
    from config.settings import Settings


class _Outcome(Protocol):
    success: bool


T = TypeVar("T", bound=_Outcome)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int | None = None  # None = retry until confirmed
    initial_delay: float = 0.0
    backoff: float = 2.0
    max_delay: float = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryPolicy:
        return cls(
            max_attempts=settings.bundle_max_attempts or None,
            initial_delay=settings.bundle_retry_delay_sec,
            backoff=settings.bundle_retry_backoff,
            max_delay=settings.bundle_retry_max_delay_sec,
        )

    @property
    def is_unbounded(self) -> bool:
        return self.max_attempts is None

    def allows_another(self, attempts_made: int) -> bool:
        return self.max_attempts is None or attempts_made < self.max_attempts

    def delay_for(self, attempts_made: int) -> float:
        """Delay before the next attempt after `attempts_made` failures."""
        if self.initial_delay <= 0:
            return 0.0
        return min(self.initial_delay * self.backoff ** (attempts_made - 1), self.max_delay)


class RetryDriver:
    """Runs an attempt until its result reports success."""

    def __init__(self, policy: RetryPolicy | None = None) -> None:
        self._policy = policy or RetryPolicy()
        self._attempts = 0

    @property
    def attempts(self) -> int:
        return self._attempts

    async def run(
        self,
        attempt: Callable[[], Awaitable[T]],
        *,
        cancel: asyncio.Event | None = None,
    ) -> T:
        self._attempts = 0
        while True:
            if cancel is not None and cancel.is_set():
                raise RetryCancelledError(f"Cancelled after {self._attempts} attempts")

            self._attempts += 1
            result = await attempt()
            if result.success:
                logger.info(f"[RETRY] Confirmed on attempt {self._attempts}")
                return result

            error = getattr(result, "error", None)
            logger.warning(f"[RETRY] Attempt {self._attempts} not confirmed: {error}")

            if not self._policy.allows_another(self._attempts):
                raise RetryExhaustedError(self._attempts, result)

            await self._wait(self._policy.delay_for(self._attempts), cancel)

    @staticmethod
    async def _wait(delay: float, cancel: asyncio.Event | None) -> None:
        if cancel is None or delay <= 0:
            # sleep(0) still yields, so an unbounded zero-delay loop stays cancellable
            await asyncio.sleep(delay)
            return
        try:
            await asyncio.wait_for(cancel.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass
