"""
Colored console logging for DTO Auto Generator.

Log levels get ANSI colors; INFO/DEBUG messages emitted through the
``log_*`` helpers are recognised by their leading marker and get their own
color.
"""

import logging
import sys
from typing import Optional, TextIO


class ColoredFormatter(logging.Formatter):
    """
    Logging formatter that adds ANSI color codes to log messages.

    Colors are disabled when the target stream is not a TTY.
    """

    # ANSI color codes
    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '',               # Default
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
    }

    # Leading markers written by the log_* helpers
    MARKER_COLORS = {
        '✓': '\033[92m\033[1m',   # Bright green, bold
        '→': '\033[94m',          # Bright blue
        '•': '\033[96m',          # Bright cyan
        '=': '\033[1m\033[96m',   # Bold bright cyan
    }

    RESET = '\033[0m'

    def __init__(self, fmt: Optional[str] = None, use_colors: bool = True, stream: Optional[TextIO] = None):
        """
        Args:
            fmt: Log format string (uses default if None)
            use_colors: Whether to use colors at all
            stream: Stream the handler writes to, checked for TTY support
        """
        super().__init__(fmt or "%(levelname)s: %(message)s")
        stream = stream if stream is not None else sys.stderr
        self.use_colors = use_colors and hasattr(stream, 'isatty') and stream.isatty()

    def format(self, record: logging.LogRecord) -> str:
        formatted_message = super().format(record)
        if not self.use_colors:
            return formatted_message

        # Errors and warnings always keep their level color
        if record.levelno >= logging.WARNING:
            color = self.COLORS.get(record.levelname, '')
        else:
            color = self._marker_color(record.getMessage()) or self.COLORS.get(record.levelname, '')

        if not color:
            return formatted_message
        return f"{color}{formatted_message}{self.RESET}"

    def _marker_color(self, message: str) -> str:
        stripped = message.lstrip()
        if not stripped:
            return ''
        return self.MARKER_COLORS.get(stripped[0], '')


def setup_colored_logging(
    level: int = logging.INFO,
    use_colors: bool = True,
    stream: Optional[TextIO] = None,
) -> logging.Handler:
    """
    Install a single colored console handler on the root logger.

    Args:
        level: Logging level (default: INFO)
        use_colors: Whether to use colors (default: True)
        stream: Output stream (default: stderr)

    Returns:
        The installed handler
    """
    stream = stream if stream is not None else sys.stderr
    formatter = ColoredFormatter(use_colors=use_colors, stream=stream)

    root_logger = logging.getLogger()

    # Remove existing handlers to avoid duplication
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(stream)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level)

    root_logger.addHandler(console_handler)
    root_logger.setLevel(level)
    return console_handler


# Convenience functions for special message types
def log_success(logger: logging.Logger, message: str) -> None:
    logger.info(f"✓ {message}")


def log_progress(logger: logging.Logger, message: str) -> None:
    logger.info(f"→ {message}")


def log_highlight(logger: logging.Logger, message: str) -> None:
    logger.info(f"• {message}")


def log_section(logger: logging.Logger, section_name: str) -> None:
    """Log a section header framed by separator lines."""
    separator = "=" * 60
    logger.info(separator)
    logger.info(f"= {section_name.upper()}")
    logger.info(separator)
