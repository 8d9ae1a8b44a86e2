"""Wall-clock timing utilities for the SVD experiments."""

from __future__ import annotations

import contextlib
import time
from dataclasses import dataclass, field
from typing import Callable, Generator, List, Tuple, TypeVar

T = TypeVar("T")


@dataclass
class TimerResult:
    """Elapsed wall-clock time of a timed block, in seconds."""

    seconds: float


@dataclass
class RepeatedTiming:
    """Timings of a callable executed several times."""

    samples: List[float] = field(default_factory=list)

    @property
    def best(self) -> float:
        return min(self.samples) if self.samples else 0.0

    @property
    def mean(self) -> float:
        return sum(self.samples) / len(self.samples) if self.samples else 0.0


@contextlib.contextmanager
def timer() -> Generator[TimerResult, None, None]:
    """Context manager for wall-clock timing.

    Example
    -------
    >>> with timer() as t:
    ...     csvd(a)
    >>> print(t.seconds)
    """

    start = time.perf_counter()
    result = TimerResult(seconds=0.0)
    try:
        yield result
    finally:
        result.seconds = float(time.perf_counter() - start)


def time_function(func: Callable[[], T]) -> Tuple[T, TimerResult]:
    """Time a zero-argument function and return its result and timing."""

    with timer() as t:
        value = func()
    return value, t


def time_repeated(make_call: Callable[[], Callable[[], T]], repeats: int) -> Tuple[T, RepeatedTiming]:
    """Time ``repeats`` fresh calls and return the last result with all samples.

    ``make_call`` builds the zero-argument callable outside the timed region,
    which lets destructive routines receive a fresh copy of their input on
    every repetition.
    """

    if repeats < 1:
        raise ValueError("repeats must be at least 1")

    timing = RepeatedTiming()
    value = None
    for _ in range(repeats):
        call = make_call()
        value, t = time_function(call)
        timing.samples.append(t.seconds)
    return value, timing
