from __future__ import annotations

from enum import Enum
from typing import Literal


LogLevelName = Literal[
    "trace",
    "debug",
    "info",
    "warn",
    "error",
    "critical",
    "fatal",
]


class LogLevel(Enum):
    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"
    FATAL = "FATAL"

    @classmethod
    def to_level(cls, level_name: str) -> LogLevel:
        return cls.__members__.get(level_name.upper(), LogLevel.INFO)

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {level: order for order, level in enumerate(LogLevel)}
