"""Timing decorator for engine entry points."""

import functools
import logging
import time
from collections.abc import Callable


def measure_time[**P, R](func: Callable[P, R]) -> Callable[P, R]:
    """
    Log the wall-clock duration of every call at debug level.

    Records go to the logger of the module defining ``func``, so they can be
    enabled per component. Failed calls are timed as well.
    """
    log = logging.getLogger(func.__module__)

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            log.debug(f"{func.__qualname__} took {elapsed_ms:.1f} ms")

    return wrapper
