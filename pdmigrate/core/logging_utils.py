# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
"""
Shared logging helpers for pdmigrate workflows.
"""
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Generator


def emoji_for_level(level: int) -> str:
    if level >= logging.ERROR:
        return "❌"
    if level >= logging.WARNING:
        return "⚠️"
    if level >= logging.INFO:
        return "✅"
    return "🔍"


def log_with_emoji(logger: Any, level: int, msg: str, *args: Any) -> None:
    """
    Log a message with an emoji prefix based on log level.

    Args:
        logger: Logger (or LoggerAdapter) to use
        level: logging level (ERROR, WARNING, INFO, DEBUG)
        msg: Message format string
        *args: Arguments for message formatting
    """
    logger.log(level, f"{emoji_for_level(level)} {msg}", *args)


@contextmanager
def log_step(logger: Any, description: str) -> Generator[None, None, None]:
    """
    Context manager for logging and timing a workflow phase.

    Logs the start of the phase, runs the block, then logs completion with
    elapsed time. Logs the error and re-raises on exception.

    Example:
        with log_step(logger, "Pre-check"):
            validate()
    """
    t0 = time.monotonic()
    log_with_emoji(logger, logging.INFO, "%s ...", description)
    try:
        yield
    except Exception as e:
        log_with_emoji(logger, logging.ERROR, "%s failed (%.2fs): %s", description, time.monotonic() - t0, e)
        raise
    log_with_emoji(logger, logging.INFO, "%s done (%.2fs)", description, time.monotonic() - t0)
