# app/providers/simulated.py
from __future__ import annotations

import random
import time
from typing import Callable, Optional

from app.providers.base import PayoutInstruction, ProviderResult


class SimulatedPayoutProvider:
    """
    Test/dev provider. Never moves money.

    Sleeps a random latency and rejects a small random share of instructions
    so the failure path gets exercised outside production. Pass `rng` and
    `sleep` to make it deterministic.
    """

    name = "simulated"

    def __init__(
        self,
        *,
        min_latency_ms: int = 1000,
        max_latency_ms: int = 3000,
        failure_rate: float = 0.05,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock_ms: Callable[[], int] = lambda: int(time.time() * 1000),
    ):
        self.min_latency_ms = max(0, int(min_latency_ms))
        self.max_latency_ms = max(self.min_latency_ms, int(max_latency_ms))
        self.failure_rate = float(failure_rate)
        self.rng = rng or random.Random()
        self.sleep = sleep
        self.clock_ms = clock_ms

    def send(self, instruction: PayoutInstruction) -> ProviderResult:
        delay_ms = self.rng.uniform(self.min_latency_ms, self.max_latency_ms)
        if delay_ms:
            self.sleep(delay_ms / 1000.0)

        if self.rng.random() < self.failure_rate:
            return ProviderResult.rejected("Simulated processing error", response={"simulated": True})

        return ProviderResult.ok(
            f"MOCK-{instruction.payout_id}-{self.clock_ms()}",
            response={"simulated": True, "latency_ms": int(delay_ms)},
        )
