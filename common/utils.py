import sys
from pathlib import Path

from loguru import logger
from rich.console import Console

__all__ = [
    "ROOT",
    "LOG_DIR",
    "console",
    "logger",
    "enable_console_logging",
]

# Get the project root directory relative to this file
ROOT = Path(__file__).parent.parent.resolve()
LOG_DIR = ROOT / ".agent"
console = Console()

# Remove Loguru's default stdout sink to prevent terminal output
logger.remove()

log_format = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS zz}</green> | <level>{level: <8}</level> | <yellow>Line {line: >4} ({file}):</yellow> <b>{message}</b>"
logger.add(
    LOG_DIR / "debug.log",
    level="DEBUG",
    format=log_format,
    colorize=False,
    backtrace=True,
    diagnose=True,
)
logger.add(
    LOG_DIR / "info.log",
    level="INFO",
    format=log_format,
    colorize=False,
    backtrace=True,
    diagnose=True,
)


def enable_console_logging(level: str = "DEBUG") -> int:
    """Mirror log records to stderr.

    Args:
        level (str): Minimum level written to the terminal.

    Returns:
        int: The loguru sink id, usable with ``logger.remove``.
    """
    return logger.add(sys.stderr, level=level, format=log_format, colorize=True)
