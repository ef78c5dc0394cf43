from __future__ import annotations

import pytest

from shortslab.utils.timing import StageTimer


def test_stage_timer_records_success_and_failure() -> None:
    ticks = iter([0.0, 1.5, 2.0, 2.25])
    timer = StageTimer(clock=lambda: next(ticks))

    with timer.stage("transcribe"):
        pass
    with pytest.raises(RuntimeError):
        with timer.stage("encode"):
            raise RuntimeError("boom")

    assert [(s.name, s.ok) for s in timer.stages] == [("transcribe", True), ("encode", False)]
    assert timer.stages[0].duration_s == 1.5
    assert timer.summary() == "transcribe=1.50s, encode=0.25s (failed)"
