"""Cross-cutting pieces of the render gateway: config, logging, rate limiting,
metrics and process lifecycle.

Logging helpers are re-exported for short imports:
    from core import get_logger
"""

from core.logger import bind_contextvars, clear_contextvars, get_logger

__all__ = [
    "bind_contextvars",
    "clear_contextvars",
    "get_logger",
]
