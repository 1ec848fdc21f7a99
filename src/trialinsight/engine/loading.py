# src/trialinsight/engine/loading.py
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence


@dataclass(frozen=True)
class LoadingPhase:
    message: str
    detail: str


DEFAULT_PHASES: tuple[LoadingPhase, ...] = (
    LoadingPhase("Loading data structure...", "Preparing trial components and patient profiles"),
    LoadingPhase("Processing patient data...", "Analyzing demographics and trial complexity factors"),
    LoadingPhase("Generating model values...", "Calculating feasibility scores across categories"),
    LoadingPhase("Finalizing visualization...", "Preparing interactive components for display"),
)


class LoadingSequence:
    """Fixed-duration simulated loading, one timed phase after another.

    Purely cosmetic: the store is fully built before the first phase starts.
    """

    def __init__(
        self,
        phase_seconds: float = 2.0,
        phases: Sequence[LoadingPhase] = DEFAULT_PHASES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.phase_seconds = max(0.0, phase_seconds)
        self.phases = tuple(phases)
        self._clock = clock
        self._started = clock()

    @property
    def total_seconds(self) -> float:
        return self.phase_seconds * len(self.phases)

    def elapsed(self) -> float:
        return self._clock() - self._started

    @property
    def is_loading(self) -> bool:
        return self.elapsed() < self.total_seconds

    def current_phase(self) -> Optional[LoadingPhase]:
        if not self.is_loading or not self.phases:
            return None
        idx = int(self.elapsed() // self.phase_seconds)
        return self.phases[min(idx, len(self.phases) - 1)]

    def progress(self) -> int:
        """Percent complete, capped at 95 until loading has finished."""
        if not self.is_loading:
            return 100
        return min(95, int(self.elapsed() / self.total_seconds * 100))
