"""
Timing helpers for the betting pool

`timer` wraps whole operations such as scoring a match; `PerformanceMonitor`
times a block inside a request and keeps the measurements on `g` so the
request can report them together.
"""

import functools
import time

from flask import current_app, g, has_app_context

from betpool.utils.logging_config import get_logger

logger = get_logger(__name__)


def _slow_threshold():
    if has_app_context():
        return current_app.config.get("SLOW_FUNCTION_THRESHOLD", 1.0)
    return 1.0


def timer(func=None, *, expected=()):
    """
    Log how long func took; warn when it exceeds SLOW_FUNCTION_THRESHOLD.

    Exceptions listed in ``expected`` are ordinary outcomes (a rejected
    request, say) and are logged at debug level instead of as errors.
    Usable bare (``@timer``) or with arguments (``@timer(expected=(...))``).
    """
    if func is None:
        return functools.partial(timer, expected=expected)

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        started = time.perf_counter()
        try:
            return func(*args, **kwargs)
        except expected as e:
            logger.debug(
                f"{func.__qualname__} rejected after "
                f"{time.perf_counter() - started:.3f}s: {e}"
            )
            raise
        except Exception as e:
            logger.error(
                f"{func.__qualname__} failed after "
                f"{time.perf_counter() - started:.3f}s: {e}"
            )
            raise
        finally:
            elapsed = time.perf_counter() - started
            threshold = _slow_threshold()
            if elapsed > threshold:
                logger.warning(
                    f"Slow call {func.__qualname__}: {elapsed:.3f}s (threshold {threshold}s)"
                )
            else:
                logger.debug(f"{func.__qualname__} took {elapsed:.3f}s")

    return wrapper


class PerformanceMonitor:
    """Time a block of code and record it in the request's metrics"""

    def __init__(self, operation_name, log_threshold=0.1):
        self.operation_name = operation_name
        self.log_threshold = log_threshold
        self.started = None
        self.duration = None

    def __enter__(self):
        self.started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.perf_counter() - self.started

        if exc_type is not None:
            logger.error(
                f"{self.operation_name} failed after {self.duration:.3f}s: {exc_val}"
            )
        elif self.duration > self.log_threshold:
            logger.info(f"{self.operation_name} took {self.duration:.3f}s")

        if has_app_context():
            g.setdefault("performance_metrics", []).append(
                {
                    "operation": self.operation_name,
                    "duration": round(self.duration, 4),
                    "success": exc_type is None,
                }
            )
        return False


def request_metrics():
    """Measurements recorded by PerformanceMonitor during this request"""
    return g.get("performance_metrics", [])
