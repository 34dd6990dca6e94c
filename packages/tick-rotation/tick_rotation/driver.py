"""FixedRateDriver: reference host loop with pacing and lifecycle hooks."""
from __future__ import annotations

import time
from typing import Callable


class FixedRateDriver:
    """Invokes registered callbacks once per frame at a fixed rate.

    Args:
        tps: Frames per second.
        advance: Called with the frame duration after the callbacks of each
            frame, e.g. ``SimulatedHost.advance`` to move the world forward.
    """

    def __init__(
        self, tps: int = 10, advance: Callable[[float], None] | None = None
    ) -> None:
        if tps <= 0:
            raise ValueError("tps must be positive")
        self._tps = tps
        self._dt = 1.0 / tps
        self._advance = advance
        self._callbacks: list[Callable[[], object]] = []
        self._start_hooks: list[Callable[[], None]] = []
        self._stop_hooks: list[Callable[[], None]] = []
        self._stop_requested = False
        self._frames = 0

    @property
    def tps(self) -> int:
        return self._tps

    @property
    def dt(self) -> float:
        return self._dt

    @property
    def frames(self) -> int:
        return self._frames

    def register(self, callback: Callable[[], object]) -> None:
        self._callbacks.append(callback)

    def on_start(self, hook: Callable[[], None]) -> None:
        self._start_hooks.append(hook)

    def on_stop(self, hook: Callable[[], None]) -> None:
        self._stop_hooks.append(hook)

    def stop(self) -> None:
        """Request the running loop to end after the current frame."""
        self._stop_requested = True

    def _frame(self) -> None:
        self._frames += 1
        for callback in self._callbacks:
            callback()
            if self._stop_requested:
                break
        if self._advance is not None:
            self._advance(self._dt)

    def step(self) -> None:
        self._stop_requested = False
        self._frame()

    def run(self, n: int) -> None:
        self._stop_requested = False
        for hook in self._start_hooks:
            hook()

        for _ in range(n):
            self._frame()
            if self._stop_requested:
                break

        for hook in self._stop_hooks:
            hook()

    def run_forever(self) -> None:
        self._stop_requested = False
        for hook in self._start_hooks:
            hook()

        while not self._stop_requested:
            start = time.monotonic()
            self._frame()
            if self._stop_requested:
                break
            elapsed = time.monotonic() - start
            sleep_time = self._dt - elapsed
            if sleep_time > 0:
                time.sleep(sleep_time)

        for hook in self._stop_hooks:
            hook()
