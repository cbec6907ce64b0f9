import logging
import re
from typing import Any

from shared.config import config

__all__ = [
    "clamp_float",
    "config",
    "count_words",
    "sanitize_filename",
    "setup_logging",
]

_WHITESPACE = re.compile(r"\s+")


def setup_logging(service_name: str, log_level: str = "INFO") -> logging.Logger:
    """Setup logging configuration for a service"""
    logger = logging.getLogger(service_name)
    logger.setLevel(getattr(logging, log_level.upper()))

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(f"%(asctime)s - {service_name} - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for safe storage"""
    invalid_chars = '<>:"/\\|?* '
    for char in invalid_chars:
        filename = filename.replace(char, "_")
    return filename


def clamp_float(value: Any, *, default: float, minimum: float, maximum: float) -> float:
    """Coerce ``value`` to float and clamp it into ``[minimum, maximum]``."""
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        numeric = default
    if numeric != numeric:  # NaN
        numeric = default
    return max(minimum, min(maximum, numeric))


def count_words(text: str) -> int:
    """Count whitespace-separated words."""
    stripped = text.strip()
    if not stripped:
        return 0
    return len(_WHITESPACE.split(stripped))
