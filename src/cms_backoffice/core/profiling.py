"""
Boot and request profiling.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Iterator, Optional, Protocol

logger = logging.getLogger(__name__)


class Profiler(Protocol):
    """Profiler interface used while booting the runtime."""

    def start(self) -> None: ...

    def stop(self, discard_results: bool = False) -> None: ...

    def step(self, name: str):  # type: ignore[no-untyped-def]
        """Context manager timing a named step."""
        ...


class VoidProfiler:
    """Profiler that records nothing. Used outside debug mode."""

    def start(self) -> None:
        pass

    def stop(self, discard_results: bool = False) -> None:
        pass

    @contextmanager
    def step(self, name: str) -> Iterator[None]:
        yield


class WebProfiler:
    """Profiler recording wall-clock timings of named steps.

    Timings are logged at DEBUG level as each step completes.
    """

    def __init__(self) -> None:
        self.started_at: Optional[float] = None
        self.timings: list[tuple[str, float]] = []

    @property
    def is_running(self) -> bool:
        return self.started_at is not None

    def start(self) -> None:
        self.started_at = time.perf_counter()
        self.timings.clear()

    def stop(self, discard_results: bool = False) -> None:
        if self.started_at is None:
            return
        total = time.perf_counter() - self.started_at
        self.started_at = None
        if discard_results:
            self.timings.clear()
            return
        logger.debug(f"Profiler stopped after {total * 1000:.1f}ms ({len(self.timings)} steps)")

    @contextmanager
    def step(self, name: str) -> Iterator[None]:
        begin = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - begin
            self.timings.append((name, elapsed))
            logger.debug(f"{name} took {elapsed * 1000:.1f}ms")
