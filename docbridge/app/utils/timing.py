"""
Wall-clock and monotonic time helpers.

Timestamps stored on records are epoch milliseconds. Durations are
measured with the monotonic clock and reported in milliseconds.
"""

import time


def now_ms() -> int:
    return int(time.time() * 1000)


def monotonic_ms() -> float:
    return time.perf_counter() * 1000


def elapsed_ms(start_ms: float) -> float:
    """
    Milliseconds elapsed since ``start_ms`` (a ``monotonic_ms()`` reading).
    """
    return max(0.0, monotonic_ms() - start_ms)
