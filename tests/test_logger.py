from __future__ import annotations

import logging

from rich.logging import RichHandler

from utils.logger import NOISY_LOGGERS, configure_logging, resolve_level


def test_resolve_level_accepts_names_and_numbers() -> None:
    assert resolve_level("debug") == logging.DEBUG
    assert resolve_level(" WARNING ") == logging.WARNING
    assert resolve_level(logging.ERROR) == logging.ERROR
    assert resolve_level("bogus") == logging.INFO
    assert resolve_level(None) == logging.INFO


def test_configure_logging_sets_root_level_and_quiets_http_clients() -> None:
    root = logging.getLogger()
    saved_level = root.level
    saved_handlers = list(root.handlers)
    saved_noisy = {name: logging.getLogger(name).level for name in NOISY_LOGGERS}
    try:
        configure_logging("debug")
        assert root.level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("anthropic").level == logging.WARNING

        rich_handlers = [handler for handler in root.handlers if isinstance(handler, RichHandler)]
        configure_logging("error")
        assert root.level == logging.ERROR
        assert logging.getLogger("httpcore").level == logging.ERROR
        assert [handler for handler in root.handlers if isinstance(handler, RichHandler)] == rich_handlers
        assert all(handler.level == logging.ERROR for handler in rich_handlers)
    finally:
        for handler in list(root.handlers):
            if handler not in saved_handlers:
                root.removeHandler(handler)
        root.setLevel(saved_level)
        for name, level in saved_noisy.items():
            logging.getLogger(name).setLevel(level)
