import time
import asyncio
import functools
import logging
from core.config import settings

logger = logging.getLogger("homeconnect.timing")


def _report(name: str, start: float, failed: bool) -> None:
    elapsed_ms = (time.perf_counter() - start) * 1000.0
    outcome = "failed after" if failed else "took"
    if elapsed_ms >= settings.SLOW_CALL_MS:
        logger.warning(f"[timing] {name} {outcome} {elapsed_ms:.2f} ms (slow)")
    else:
        logger.info(f"[timing] {name} {outcome} {elapsed_ms:.2f} ms")


def timeit(label: str = None):
    """
    Log how long a handler or service call took; calls slower than
    SLOW_CALL_MS are logged at WARNING.

        @router.post("/login")
        @timeit()
        async def login(...):
            ...
    """

    def _decorate(func):
        name = label or func.__qualname__

        if asyncio.iscoroutinefunction(func):

            @functools.wraps(func)
            async def _timed_async(*args, **kwargs):
                start, failed = time.perf_counter(), True
                try:
                    result = await func(*args, **kwargs)
                    failed = False
                    return result
                finally:
                    _report(name, start, failed)

            return _timed_async

        @functools.wraps(func)
        def _timed(*args, **kwargs):
            start, failed = time.perf_counter(), True
            try:
                result = func(*args, **kwargs)
                failed = False
                return result
            finally:
                _report(name, start, failed)

        return _timed

    return _decorate
