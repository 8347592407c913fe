"""
perf.py
=======

Timing and memory profiling of the stages of a correlator run.

A run processes many observations and each observation passes through the
same few stages, so :class:`PerfStats` accumulates per stage name (total
time, number of calls, peak memory) instead of recording every call.

Classes
-------
StatsTool
    Formatting helpers for time and memory values.
StepStats
    Accumulated statistics of one named stage.
PerfStats
    Context manager collecting :class:`StepStats` and reporting them.
"""

import contextlib
import logging
import time
import tracemalloc

__all__ = ["StatsTool", "StepStats", "PerfStats"]


class StatsTool:
    """Formatting helpers shared by the profiling classes."""

    @staticmethod
    def _format_time(t):
        if t is None:
            return "-"
        if t < 1e-3:
            return f"{t*1e6:.1f} μs"
        elif t < 1:
            return f"{t*1e3:.2f} ms"
        elif t < 60:
            return f"{t:.3f} s"
        else:
            return f"{t/60:.2f} min"

    @staticmethod
    def _format_mem(m):
        if m is None:
            return "-"
        mabs = abs(m)
        if mabs < 1024:
            return f"{m:.1f} B"
        elif mabs < 1048576:        # 1024**2
            return f"{m/1024:.1f} KiB"
        elif mabs < 1073741824:      # 1024**3
            return f"{m/1048576:.2f} MiB"
        else:
            return f"{m/1073741824:.2f} GiB"


class StepStats(StatsTool):
    """
    Accumulated statistics of one stage.

    Attributes
    ----------
    calls : int
        Number of times the stage ran.
    time : float or None
        Total wall-clock time in seconds (``None`` if time is not measured).
    memory_peak : int or None
        Largest traced-memory increase over the stage's start, in bytes.
    """

    def __init__(self):
        self.calls = 0
        self.time = None
        self.memory_peak = None

    @property
    def mean_time(self):
        if self.time is None or self.calls == 0:
            return None
        return self.time / self.calls

    def add(self, elapsed, peak):
        self.calls += 1
        if elapsed is not None:
            self.time = elapsed if self.time is None else self.time + elapsed
        if peak is not None:
            self.memory_peak = peak if self.memory_peak is None else max(self.memory_peak, peak)

    def __repr__(self):
        return (f"StepStats(calls={self.calls}, Time={self._format_time(self.time)}, "
                f"Mean={self._format_time(self.mean_time)}, Peak={self._format_mem(self.memory_peak)})")


class PerfStats(StatsTool):
    """
    Profile the named stages of a block of work.

    Use as a context manager around the whole run and wrap each stage in
    :meth:`step`. When neither time nor memory is enabled every method is
    a cheap no-op.

    Examples
    --------
    >>> perf = PerfStats(time=True, memory=False)
    >>> with perf:
    ...     for obs in observations:
    ...         with perf.step("observables"):
    ...             ...
    >>> perf.report(logger)
    """

    def __init__(self, time=True, memory=True, tracemalloc_nframe=1):
        self.time_enabled = time
        self.memory_enabled = memory
        self.tracemalloc_nframe = tracemalloc_nframe
        self.steps: dict[str, StepStats] = {}
        self._active = False
        self._start_time = None
        self._total_time = None
        self._tracemalloc_started = False

    @property
    def enabled(self):
        return self.time_enabled or self.memory_enabled

    def reset(self):
        self.steps.clear()
        self._start_time = None
        self._total_time = None

    def __enter__(self):
        self.reset()
        self._active = True
        if self.time_enabled:
            self._start_time = time.perf_counter()
        if self.memory_enabled and not tracemalloc.is_tracing():
            tracemalloc.start(self.tracemalloc_nframe)
            self._tracemalloc_started = True
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.time_enabled and self._start_time is not None:
            self._total_time = time.perf_counter() - self._start_time
        if self._tracemalloc_started:
            tracemalloc.stop()
            self._tracemalloc_started = False
        self._active = False

    @contextlib.contextmanager
    def step(self, name):
        """
        Profile one execution of the stage ``name``.

        Raises
        ------
        RuntimeError
            If profiling is enabled but the object is not used as a context manager.
        """
        if not self.enabled:
            yield
            return
        if not self._active:
            raise RuntimeError("PerfStats must be used as a context manager (with ...) before calling step.")

        mem_start = None
        if self.memory_enabled:
            mem_start, _ = tracemalloc.get_traced_memory()
            tracemalloc.reset_peak()
        t0 = time.perf_counter() if self.time_enabled else None
        try:
            yield
        finally:
            elapsed = time.perf_counter() - t0 if t0 is not None else None
            peak = None
            if mem_start is not None:
                _, peak_abs = tracemalloc.get_traced_memory()
                peak = peak_abs - mem_start
            self.steps.setdefault(name, StepStats()).add(elapsed, peak)

    def report(self, logger: logging.Logger | None = None, title: str = "") -> str:
        """
        Log (or print) a table of the accumulated stage statistics.

        Returns the report text; an empty string if profiling is disabled.
        """
        if not self.enabled:
            return ""
        header = f"{'Step':<15} | {'Calls':>9} | {'Time':>12} | {'Mean':>12} | {'Peak Mem':>12}"
        lines = [title] if title else []
        lines.extend(["-" * len(header), header, "-" * len(header)])
        for name, stats in self.steps.items():
            lines.append(
                f"{name:<15} | {stats.calls:>9} | {self._format_time(stats.time):>12} | "
                f"{self._format_time(stats.mean_time):>12} | {self._format_mem(stats.memory_peak):>12}"
            )
        lines.append("-" * len(header))
        lines.append(f"{'Total':<15} | {'':>9} | {self._format_time(self._total_time):>12} | {'':>12} | {'':>12}")
        lines.append("-" * len(header))

        msg = "\n" + "\n".join(lines)
        if logger is not None:
            logger.info(msg)
        else:
            print(msg)
        return msg
