"""Tests for logger context binding."""

import logging

from pgsculpt.config import bind_logger
from pgsculpt.config.logging import get_logger


class _ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.messages = []

    def emit(self, record):
        self.messages.append(record.getMessage())


def test_bound_context_prefixes_messages():
    log = bind_logger(logging.getLogger("pgsculpt.tests.bind"), plugin="types")
    assert log.process("Rendering", {}) == ("[plugin=types] Rendering", {})


def test_bound_context_keeps_key_order():
    log = bind_logger(logging.getLogger("pgsculpt.tests.bind"), plugin="zod", entity="User")
    msg, _ = log.process("Declared", {})
    assert msg == "[plugin=zod entity=User] Declared"


def test_bound_logger_emits_through_handler():
    logger = get_logger("tests.emit")
    handler = _ListHandler()
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    try:
        bind_logger(logger, plugin="queries").debug("Declared 3 symbols")
    finally:
        logger.removeHandler(handler)
    assert handler.messages == ["[plugin=queries] Declared 3 symbols"]
