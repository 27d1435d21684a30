"""
Checker context for cross-cutting options.

This module defines the CheckerContext dataclass which holds options that
affect several stages of qualifier inference (logging, alias configuration).
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict


class LogLevel(IntEnum):
    """Hierarchical logging levels for the checker."""
    SILENT = 0      # No logging
    ERROR = 3       # Error messages only
    WARNING = 6     # Warning messages (default)
    INFO = 10       # General progress messages (-v)
    DEBUG = 30      # Per-node inference decisions (-vvv)


@dataclass
class CheckerContext:
    """
    Holds cross-cutting options for one checker run.

    Attributes:
        log_rich_format:    If True, emit logs in rich format: log level and timestamp prefix.
        log_level:          Current logging level.
        extra_aliases:      Additional annotation spellings mapped to a canonical
                            qualifier name ("Interned" or "Unqualified").
    """
    log_rich_format: bool = False
    log_level: LogLevel = LogLevel.WARNING
    extra_aliases: Dict[str, str] = field(default_factory=dict)

    @staticmethod
    def default() -> 'CheckerContext':
        """Create a CheckerContext with default settings."""
        return CheckerContext(log_level=LogLevel.WARNING)
