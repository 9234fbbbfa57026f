"""
Unicode handling utilities for console report output.
"""

import io
import logging
import sys
from typing import Any, TextIO

logger = logging.getLogger(__name__)


class UnicodeHandler:
    """Handle consoles that cannot encode the emoji markers used in reports."""

    @staticmethod
    def safe_str(value: Any, fallback: str = "N/A") -> str:
        """Convert any value to a safe ASCII string."""
        if value is None:
            return fallback

        try:
            return str(value).encode('ascii', 'replace').decode('ascii')
        except Exception as e:
            logger.warning(f"Unicode conversion failed for value: {e}")
            return fallback

    @staticmethod
    def can_encode(text: str, stream: TextIO = None) -> bool:
        """Check whether ``stream`` (stdout by default) can encode ``text``."""
        stream = stream or sys.stdout
        encoding = getattr(stream, 'encoding', None) or 'ascii'
        try:
            text.encode(encoding)
            return True
        except (UnicodeEncodeError, LookupError):
            return False

    @staticmethod
    def configure_console_encoding() -> None:
        """Re-wrap stdout as UTF-8 when its current encoding cannot carry emoji."""
        if UnicodeHandler.can_encode("🚨✅"):
            return

        try:
            if hasattr(sys.stdout, 'reconfigure'):
                sys.stdout.reconfigure(encoding='utf-8', errors='replace')
            elif hasattr(sys.stdout, 'buffer'):
                sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8', errors='replace')
            logger.debug("Configured UTF-8 console encoding")
        except Exception as e:
            logger.warning(f"Could not configure UTF-8 encoding: {e}")

    @staticmethod
    def console_text(text: str, stream: TextIO = None) -> str:
        """Return ``text`` unchanged if the stream can encode it, else an ASCII fallback."""
        if UnicodeHandler.can_encode(text, stream):
            return text
        return UnicodeHandler.safe_str(text)
