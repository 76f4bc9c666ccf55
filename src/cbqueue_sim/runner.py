"""Simulation runner for cbqueue-sim.

This module handles the actual simulation logic, decoupled from display.
It updates a SimulationState object that can be rendered by any display.
"""

from __future__ import annotations

import asyncio
import random
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

import cbqueue

if TYPE_CHECKING:
    from cbqueue_sim.display import SimulationState


@dataclass
class SimConfig:
    """Configuration for a simulation run."""

    count: int = 100
    latency_ms: int = 100
    latency_jitter: float = 0.2  # ±20% variance
    outlier_chance: float = 0.0  # Probability of outlier (0.0-1.0)
    outlier_multiplier: float = 5.0  # Outliers take this much longer
    error_rate: float = 0.0  # Per attempt
    retries: int = 0
    duration: float | None = None
    max_concurrent: int = 5
    submit_rate: float | None = None  # work/second, None = batch


class SimulationRunner:
    """Runs simulations and updates state for display.

    Usage:
        config = SimConfig(count=100, latency_ms=50)
        state = SimulationState()
        runner = SimulationRunner(config, state)

        # In your event loop:
        await runner.run()
    """

    def __init__(
        self,
        config: SimConfig,
        state: "SimulationState",
        on_event: Callable[[str, str, str], None] | None = None,
    ):
        self.config = config
        self.state = state
        self.on_event = on_event or state.add_event

        self._queue: cbqueue.CallbackQueue | None = None
        self._running = False

    async def run(self) -> None:
        """Run the simulation to completion."""
        self._running = True
        self.state.start_time = time.time()
        self.state.target_count = self.config.count
        self.state.latency_ms = self.config.latency_ms
        self.state.latency_jitter = self.config.latency_jitter
        self.state.outlier_chance = self.config.outlier_chance
        self.state.error_rate = self.config.error_rate
        self.state.retries = self.config.retries
        self.state.max_concurrent = self.config.max_concurrent

        self._queue = cbqueue.CallbackQueue({
            "max_concurrent": self.config.max_concurrent,
            "on_success": self._on_success,
            "on_error": self._on_error,
            "on_busy": lambda: self._on_transition("busy"),
            "on_idle": lambda: self._on_transition("idle"),
            "on_stop": lambda: self._on_transition("stopped"),
        })

        await self._submit_work()
        await self._monitor()

        self._queue.stop()
        await self._queue.drain()
        self._update_state()
        self._running = False

    def _make_action(self, index: int) -> Callable:
        """Build the mock action for work item `index`."""
        work_id = f"work_{index:04d}"
        attempts = 0

        async def mock_action() -> None:
            nonlocal attempts
            attempts += 1
            started = time.time()
            self.on_event("started", work_id, f"attempt {attempts}")

            # Calculate latency with jitter and possible outliers
            base_latency = self.config.latency_ms / 1000.0
            is_outlier = False

            if base_latency > 0:
                if self.config.outlier_chance > 0 and random.random() < self.config.outlier_chance:
                    actual_latency = base_latency * self.config.outlier_multiplier
                    actual_latency *= random.uniform(0.8, 1.5)
                    is_outlier = True
                else:
                    jitter = self.config.latency_jitter
                    actual_latency = base_latency * random.uniform(1 - jitter, 1 + jitter)

                await asyncio.sleep(actual_latency)

            if random.random() < self.config.error_rate:
                if attempts > self.config.retries:
                    self.state.failed += 1
                    self.on_event("failed", work_id, "Simulated error")
                else:
                    self.state.retried += 1
                    self.on_event("retrying", work_id, f"{attempts}/{self.config.retries}")
                raise RuntimeError("Simulated error")

            detail = f"{int((time.time() - started) * 1000)}ms"
            if is_outlier:
                detail += " [outlier]"
            self.on_event("completed", work_id, detail)

        return mock_action

    def _on_success(self) -> None:
        self.state.completed += 1

    def _on_error(self, error: Exception) -> None:
        self.state.errors += 1

    def _on_transition(self, name: str) -> None:
        self.state.transitions[name] = self.state.transitions.get(name, 0) + 1
        if self._queue is not None:
            self.state.queue_state = self._queue.state.value
        self.on_event(name, "queue", "")

    async def _submit_work(self) -> None:
        """Submit work according to config."""
        if not self.config.submit_rate:
            self._queue.enqueue_all(
                [self._make_action(i) for i in range(self.config.count)],
                retries=self.config.retries,
            )
            self.state.submitted = self.config.count
            self.on_event("queued", "batch", f"{self.config.count} items")
            return

        for i in range(self.config.count):
            if not self._running:
                break

            self._queue.enqueue(self._make_action(i), retries=self.config.retries)
            self.state.submitted += 1
            self.on_event("queued", f"work_{i:04d}", "")

            await asyncio.sleep(1.0 / self.config.submit_rate)

            if self.config.duration and self._elapsed >= self.config.duration:
                break

    async def _monitor(self) -> None:
        """Monitor until all work completes or duration exceeded."""
        while self._running:
            self._update_state()

            if self.state.queued == 0 and self.state.running == 0:
                break

            if self.config.duration and self._elapsed >= self.config.duration:
                break

            await asyncio.sleep(0.05)

    def _update_state(self) -> None:
        """Update simulation state from the queue."""
        if not self._queue:
            return

        self.state.elapsed = self._elapsed
        self.state.queued = self._queue.pending_count
        self.state.running = self._queue.running_count
        self.state.queue_state = self._queue.state.value
        self.state.peak_running = max(self.state.peak_running, self.state.running)

    @property
    def _elapsed(self) -> float:
        """Elapsed time since start."""
        return time.time() - self.state.start_time

    def stop(self) -> None:
        """Request simulation stop."""
        self._running = False

    async def cleanup(self, timeout: float = 1.0) -> None:
        """Stop the queue and give running work a moment to finish."""
        if self._queue:
            self._queue.stop()
            if not await self._queue.drain(timeout=timeout):
                self.on_event("abandoned", "queue", f"{self._queue.running_count} still running")
            self._update_state()
            self._queue = None
        self._running = False
