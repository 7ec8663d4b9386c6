"""
Cutover — Mergeability poller.

Queries a change request's merge status strictly in sequence until it
becomes mergeable, reports a conflict, or the attempt budget runs out.
Conflicts stop the loop at once since they never resolve by waiting.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable

from app.core.config import PollConfig
from app.errors import MergeConflictError, MergeTimeoutError
from app.models.release import MergeStatus
from app.providers.base import ProviderClient
from app.utils.logging import logger


@dataclass(frozen=True)
class PollPolicy:
    """Attempt budget and pacing; backoff == 1.0 means a constant delay."""

    max_attempts: int = 7
    delay: float = 1.0
    backoff: float = 2.0
    max_delay: float = 8.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay < 0 or self.max_delay < 0:
            raise ValueError("delays must not be negative")
        if self.backoff < 1.0:
            raise ValueError("backoff must be >= 1.0")

    @classmethod
    def from_config(cls, cfg: PollConfig) -> "PollPolicy":
        return cls(
            max_attempts=cfg.max_attempts,
            delay=cfg.delay,
            backoff=cfg.backoff,
            max_delay=cfg.max_delay,
        )

    def delay_after(self, attempt: int) -> float:
        """Seconds to wait after the given 1-based attempt."""
        return min(self.delay * self.backoff ** (attempt - 1), self.max_delay)


class MergeabilityPoller:
    def __init__(
        self,
        policy: PollPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.policy = policy or PollPolicy()
        self._sleep = sleep

    async def wait_until_mergeable(self, client: ProviderClient, number: int) -> int:
        """
        Return the attempt on which the change request was mergeable.

        Raises MergeConflictError on the first conflicting status and
        MergeTimeoutError once every attempt saw anything else. Query
        errors propagate unchanged.
        """
        attempts = self.policy.max_attempts
        logger.info("  Checking %s %d mergeability (max %d checks)", client.noun, number, attempts)

        for attempt in range(1, attempts + 1):
            status = await client.query_mergeability(number)
            logger.info("  check %d/%d → %s", attempt, attempts, status.value)

            if status == MergeStatus.MERGEABLE:
                return attempt
            if status == MergeStatus.CONFLICTING:
                raise MergeConflictError(number, attempt)

            if attempt < attempts:
                wait = self.policy.delay_after(attempt)
                if wait > 0:
                    await self._sleep(wait)

        raise MergeTimeoutError(number, attempts)
