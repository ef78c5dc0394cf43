from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, List

Clock = Callable[[], float]


@dataclass(frozen=True)
class StageTiming:
    name: str
    started_at: float
    finished_at: float
    ok: bool

    @property
    def duration_s(self) -> float:
        return self.finished_at - self.started_at


class StageTimer:
    """Records wall-clock duration of each pipeline stage, including failed ones."""

    def __init__(self, *, clock: Clock = time.monotonic) -> None:
        self._clock = clock
        self.stages: List[StageTiming] = []

    @contextmanager
    def stage(self, name: str) -> Iterator[None]:
        started_at = self._clock()
        ok = False
        try:
            yield
            ok = True
        finally:
            self.stages.append(
                StageTiming(
                    name=name,
                    started_at=started_at,
                    finished_at=self._clock(),
                    ok=ok,
                )
            )

    def summary(self) -> str:
        return ", ".join(
            f"{s.name}={s.duration_s:.2f}s{'' if s.ok else ' (failed)'}" for s in self.stages
        )
