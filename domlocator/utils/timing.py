# domlocator/utils/timing.py
from __future__ import annotations

import asyncio
import functools
import inspect
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar

from domlocator.utils.logger import get_logger

F = TypeVar("F", bound=Callable[..., Any])


# ---------------- Monotonic time helpers ----------------

def now_ms() -> int:
    """Monotonic time in milliseconds."""
    return time.monotonic_ns() // 1_000_000


async def async_sleep_ms(ms: int) -> None:
    """Async sleep for `ms` milliseconds (always yields to the loop, even for 0)."""
    await asyncio.sleep(max(ms, 0) / 1000.0)


def ms_to_seconds(ms: Optional[int]) -> Optional[float]:
    """Convert a millisecond timeout to seconds; None or <= 0 means no deadline."""
    if ms is None or ms <= 0:
        return None
    return ms / 1000.0


# ---------------- Stopwatch ----------------

@dataclass
class Stopwatch:
    """Simple stopwatch usable as a context manager."""
    start_ms: Optional[int] = None

    def start(self) -> "Stopwatch":
        self.start_ms = now_ms()
        return self

    def elapsed_ms(self) -> int:
        if self.start_ms is None:
            return 0
        return max(0, now_ms() - self.start_ms)

    def __enter__(self) -> "Stopwatch":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        return None


def _human(ms: int) -> str:
    return f"{ms} ms" if ms < 1000 else f"{ms / 1000:.3f} s"


# ---------------- measure decorator ----------------

def measure(label: str = "", level: str = "DEBUG") -> Callable[[F], F]:
    """
    Decorator logging the execution time of a function or coroutine function.

        @measure("locator.click")
        async def click(...): ...
    """
    log = get_logger(__name__)
    log_fn = getattr(log, level.lower(), log.debug)

    def decorator(func: F) -> F:
        name = label or func.__qualname__

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with Stopwatch() as sw:
                    try:
                        return await func(*args, **kwargs)
                    finally:
                        log_fn(f"{name} took {_human(sw.elapsed_ms())}")
            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            with Stopwatch() as sw:
                try:
                    return func(*args, **kwargs)
                finally:
                    log_fn(f"{name} took {_human(sw.elapsed_ms())}")
        return wrapper  # type: ignore[return-value]

    return decorator
