"""Platform abstraction layer."""

from .detection import Platform, detect_platform
from .files import atomic_write_text, write_private_bytes
from .process import ProcessError, run

__all__ = [
    # detection
    "Platform",
    "detect_platform",
    # files
    "atomic_write_text",
    "write_private_bytes",
    # process
    "ProcessError",
    "run",
]
