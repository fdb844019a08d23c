"""
Decorators for timing add-on store operations and recording them to Prometheus
"""

import time
import functools


def tracked_operation(operation):
    """Decorator to count and time an add-on store operation"""

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            from metrics import addon_operations_total, addon_operation_duration_seconds

            start = time.time()
            status = "success"

            try:
                return func(*args, **kwargs)
            except Exception:
                status = "error"
                raise
            finally:
                duration = time.time() - start
                addon_operations_total.labels(operation=operation, status=status).inc()
                addon_operation_duration_seconds.labels(operation=operation).observe(duration)

        return wrapper

    return decorator
