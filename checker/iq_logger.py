"""
Logging utilities for the interning checker.

This module provides logging functions that respect the CheckerContext
settings (log level and rich format).
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import sys
import time
from typing import Optional

from iq_context import CheckerContext, LogLevel


_PREFIXES = {
    LogLevel.ERROR: "[ERROR] ",
    LogLevel.WARNING: "[WARNING] ",
    LogLevel.INFO: "[INFO] ",
    LogLevel.DEBUG: "[DEBUG] ",
}


def log(context: Optional[CheckerContext], log_level: LogLevel, message: str) -> None:
    """
    Log a message if the context's level admits it.

    Args:
        context:    The checker context holding the logging level.
        log_level:  The level of the message to log.
        message:    The message to log.
    """
    if context is None:
        print("No context provided for logging.", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        return
    if context.log_level < log_level:
        return
    prefix = ""
    if context.log_rich_format:
        timestamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime())
        prefix = f"{timestamp} {_PREFIXES.get(log_level, '')}"
    print(f"{prefix}{message}", file=sys.stderr)


def log_error(context: Optional[CheckerContext], message: str) -> None:
    log(context, LogLevel.ERROR, message)


def log_warning(context: Optional[CheckerContext], message: str) -> None:
    log(context, LogLevel.WARNING, message)


def log_info(context: Optional[CheckerContext], message: str) -> None:
    log(context, LogLevel.INFO, message)


def log_debug(context: Optional[CheckerContext], message: str) -> None:
    log(context, LogLevel.DEBUG, message)


def log_stage(context: Optional[CheckerContext], stage: str, unit: Optional[str] = None) -> None:
    """
    Log the start of an inference stage.

    Args:
        context: The checker context.
        stage:   The name of the stage (e.g., "Binding names").
        unit:    Optional compilation unit name being processed.
    """
    if unit:
        log(context, LogLevel.INFO, f"{stage} for unit '{unit}'")
    else:
        log(context, LogLevel.INFO, f"{stage}...")
