import logging

import pytest

from phcorr.util.perf import PerfStats


def test_steps_accumulate():
    perf = PerfStats(time=True, memory=True)
    with perf:
        for _ in range(3):
            with perf.step("work"):
                sum(range(1000))
            with perf.step("alloc"):
                [0] * 1000
    assert perf.steps["work"].calls == 3
    assert perf.steps["work"].time > 0
    assert perf.steps["alloc"].memory_peak is not None
    report = perf.report(logging.getLogger("phcorr.test"), title="run")
    assert "work" in report and "alloc" in report


def test_disabled_is_noop():
    perf = PerfStats(time=False, memory=False)
    with perf.step("anything"):
        pass
    assert perf.steps == {}
    assert perf.report() == ""


def test_step_outside_context():
    perf = PerfStats(time=True, memory=False)
    with pytest.raises(RuntimeError):
        with perf.step("work"):
            pass
