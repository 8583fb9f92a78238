"""Delay and random-failure injection for echo requests."""

import asyncio
import random
from dataclasses import dataclass

from faultecho.contracts import EchoConfig


@dataclass(frozen=True)
class FaultDecision:
    delay_ms: float
    fail: bool


class FaultInjector:
    """Applies an ``EchoConfig`` to one request.

    ``rng`` can be a seeded ``random.Random`` for reproducible failures.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def decide(self, config: EchoConfig) -> FaultDecision:
        fail = self._rng.random() * 100 < config.failure_rate
        return FaultDecision(delay_ms=max(config.delay, 0.0), fail=fail)

    async def apply(self, config: EchoConfig) -> FaultDecision:
        """Sleep for the configured delay, then decide whether to fail."""
        decision = self.decide(config)
        if decision.delay_ms > 0:
            await asyncio.sleep(decision.delay_ms / 1000)
        return decision


_injector: FaultInjector | None = None


def get_fault_injector() -> FaultInjector:
    global _injector
    if _injector is None:
        _injector = FaultInjector()
    return _injector


def set_fault_injector(injector: FaultInjector | None) -> None:
    """Replace the process-wide injector (``None`` restores the default)."""
    global _injector
    _injector = injector
