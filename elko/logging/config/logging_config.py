import contextvars
from typing import Literal

from elko.logging.models import LogLevel, LogLevelName


LogOutput = Literal["stdout", "stderr"]


_log_level = contextvars.ContextVar("elko_log_level", default=LogLevel.INFO)
_log_output = contextvars.ContextVar("elko_log_output", default="stderr")
_log_directory = contextvars.ContextVar("elko_log_directory", default=None)
_disabled_loggers = contextvars.ContextVar("elko_disabled_loggers", default=frozenset())


class LoggingConfig:
    """
    Process-wide logging settings. Values live in context variables, so
    tasks inherit whatever was configured before they were created.
    """

    def update(
        self,
        log_directory: str | None = None,
        log_level: LogLevelName | None = None,
        log_output: LogOutput | None = None,
    ):
        if log_directory:
            _log_directory.set(log_directory)

        if log_level:
            _log_level.set(LogLevel.to_level(log_level))

        if log_output:
            _log_output.set("stdout" if log_output == "stdout" else "stderr")

    def disable(self, logger_name: str):
        _disabled_loggers.set(_disabled_loggers.get() | {logger_name})

    def enabled(self, logger_name: str, log_level: LogLevel) -> bool:
        return (
            logger_name not in _disabled_loggers.get()
            and log_level.severity >= _log_level.get().severity
        )

    @property
    def level(self) -> LogLevel:
        return _log_level.get()

    @property
    def output(self) -> LogOutput:
        return _log_output.get()

    @property
    def directory(self) -> str | None:
        return _log_directory.get()
