"""Observability utilities for LOGSYNC application.

Configures the process logger and provides a lightweight timing decorator
used by the tail pipeline to flag slow ticks.
"""

import functools
import logging
import time

from logsync.config import LOG_LEVEL

OBS_TICK_SLOW_MS = 250.0

# Configure logger once for the whole package
_logger = logging.getLogger("logsync")
_logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
if not _logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [LOGSYNC] %(levelname)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    _logger.addHandler(handler)


def instrument_service(service_name, threshold_ms=OBS_TICK_SLOW_MS):
    """Decorator to time service functions.

    Logs a warning when execution exceeds threshold.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                return func(*args, **kwargs)
            finally:
                duration_ms = (time.time() - start_time) * 1000
                if duration_ms > threshold_ms:
                    _logger.warning(
                        f"Service {service_name} exceeded threshold: {duration_ms:.1f}ms "
                        f"(threshold: {threshold_ms}ms)"
                    )

        return wrapper

    return decorator
