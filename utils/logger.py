"""
Logger Configuration
Rich console logging for the briefing pipeline, installed once per entry point.
"""
import logging
import sys
from pathlib import Path
from typing import Optional, Union

from rich.logging import RichHandler
from rich.console import Console


console = Console()

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_FORMAT_SIMPLE = "%(message)s"

LOG_DIR = Path(__file__).parent.parent / "logs"

# HTTP clients log every request at INFO; a single job issues dozens of
# feed, search and HEAD requests.
NOISY_LOGGERS = ("httpx", "httpcore", "anthropic", "openai")


def setup_logger(
    name: str = "",
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    use_rich: bool = True,
) -> logging.Logger:
    """
    Attach console (and optional file) handlers to a logger.

    Args:
        name: logger name ("" is the root logger, which module loggers propagate to)
        level: log level
        log_file: file name under logs/ (optional)
        use_rich: render console output with Rich

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    if use_rich:
        console_handler = RichHandler(
            console=console,
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
        )
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT_SIMPLE))
    else:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    if log_file:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(LOG_DIR / log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler.setLevel(level)
        logger.addHandler(file_handler)

    return logger


def resolve_level(level: Union[int, str, None]) -> int:
    """Map "debug"/"INFO"/numeric levels to a logging level; unknown names fall back to INFO."""
    if isinstance(level, int):
        return level
    value = getattr(logging, str(level or "").strip().upper(), None)
    return value if isinstance(value, int) else logging.INFO


def configure_logging(level: Union[int, str, None] = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Install the root handler used by the CLI and the web app.

    Repeated calls keep the existing handlers and only adjust levels, so an
    app reloaded under uvicorn does not duplicate output.
    """
    resolved = resolve_level(level)
    root = setup_logger("", level=resolved, log_file=log_file)
    for handler in root.handlers:
        if isinstance(handler, RichHandler):
            handler.setLevel(resolved)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))
    return root
