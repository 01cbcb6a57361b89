"""Non-critical side effects: interaction tracking, preference learning.

Effects run as background tasks. Their outcome is an ``EffectResult`` that
the caller is free to ignore; a failed effect is logged and never reaches
the user or aborts the event that scheduled it.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable

log = logging.getLogger("rentals.effects")


@dataclass
class EffectResult:
    name: str
    ok: bool
    error: str = ""


class EffectRunner:
    """Schedules best-effort coroutines and keeps them alive until done."""

    def __init__(self) -> None:
        self._pending: set[asyncio.Task[EffectResult]] = set()

    def schedule(self, name: str, coro: Awaitable) -> asyncio.Task[EffectResult]:
        """Start ``coro`` in the background. The returned task never raises."""
        task = asyncio.ensure_future(self._run(name, coro))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    @staticmethod
    async def _run(name: str, coro: Awaitable) -> EffectResult:
        try:
            await coro
        except Exception as e:
            log.warning("Non-critical effect %s failed: %s", name, e)
            return EffectResult(name=name, ok=False, error=str(e))
        return EffectResult(name=name, ok=True)

    async def drain(self) -> list[EffectResult]:
        """Wait for every outstanding effect and return their results."""
        results: list[EffectResult] = []
        while self._pending:
            batch = list(self._pending)
            results.extend(await asyncio.gather(*batch))
            self._pending.difference_update(batch)
        return results

    @property
    def pending_count(self) -> int:
        return len(self._pending)
