"""skernel - plugin/function orchestration runtime."""

import logging

logging.getLogger("skernel").addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "config",
    "logging",
    "runtime",
]
