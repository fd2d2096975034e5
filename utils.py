#!/usr/bin/env python3
"""
utils.py

Core utilities for the infoscreen project:
- Logging decorator and coloured log formatter
- Pillow resampling constant
- Timestamp helpers
"""
import datetime
import functools
import logging
from typing import Optional

from PIL import Image

# Colored logging
from colorama import init as colorama_init, Fore, Style
colorama_init(autoreset=True)

try:
    RESAMPLE_LANCZOS = Image.Resampling.LANCZOS  # Pillow >= 9.1
except AttributeError:  # pragma: no cover - fallback for older Pillow
    RESAMPLE_LANCZOS = Image.LANCZOS


# ─── Logging decorator ──────────────────────────────────────────────────────
def log_call(func):
    """
    Decorator that logs entry & exit at DEBUG level only.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logging.debug(f"→ {func.__name__}()")
        result = func(*args, **kwargs)
        logging.debug(f"← {func.__name__}()")
        return result
    return wrapper


class ColorFormatter(logging.Formatter):
    """Prefix the level name with a colour for terminal output."""

    LEVEL_COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = self.LEVEL_COLORS.get(record.levelno)
        if not color:
            return message
        return f"{color}{message}{Style.RESET_ALL}"


# ─── Time helpers ───────────────────────────────────────────────────────────
def timestamp_to_datetime(value, tz) -> Optional[datetime.datetime]:
    try:
        return datetime.datetime.fromtimestamp(value, tz)
    except Exception:
        return None


def to_local(moment: datetime.datetime, tz) -> datetime.datetime:
    """Convert *moment* to *tz*; naive datetimes are taken as UTC."""

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=datetime.timezone.utc)
    return moment.astimezone(tz)
