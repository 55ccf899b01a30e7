import asyncio
import io
import os
import pathlib
import sys
from typing import TextIO

import msgspec

from elko.logging.config import LoggingConfig
from elko.logging.models import Entry, Log, LogLevel, ModelsConfig


DEFAULT_TEMPLATE = "{timestamp} - {level} - {thread_id} - {filename}:{function_name}.{line_number} - {message}"

_LOGGING_PACKAGE = os.path.dirname(os.path.dirname(os.path.abspath(__file__))) + os.sep


def to_logfile_path(name: str, path: str | None) -> pathlib.Path | None:
    """
    Resolve the JSON log file for a stream. A path without a suffix is a
    directory and receives ``<name>.json``.
    """
    if path is None:
        return None

    logfile = pathlib.Path(path)
    if not logfile.suffix:
        return logfile / f"{name}.json"

    if logfile.suffix != ".json":
        raise ValueError(f"Log file {path} must be a JSON file")

    return logfile


def find_caller() -> tuple[str, int, str]:
    """First stack frame outside of the logging package."""
    frame = sys._getframe(1)
    while frame is not None and frame.f_code.co_filename.startswith(_LOGGING_PACKAGE):
        frame = frame.f_back

    if frame is None:
        return "<unknown>", 0, "<unknown>"

    return (
        frame.f_code.co_filename,
        frame.f_lineno,
        frame.f_code.co_name,
    )


class LoggerStream:
    """
    Writes the entries of one named logger, either as formatted lines to
    the console or as JSON lines to a log file.
    """

    def __init__(
        self,
        name: str = "default",
        template: str | None = None,
        path: str | None = None,
        models: ModelsConfig | None = None,
    ) -> None:
        self.name = name
        self.template = template or DEFAULT_TEMPLATE
        self.logfile = to_logfile_path(name, path)

        self._config = LoggingConfig()
        self._file: io.BufferedWriter | None = None
        self._file_lock = asyncio.Lock()

        self._models: ModelsConfig = {
            "default": (Entry, {"level": LogLevel.INFO}),
        }
        self.update_models(models or {})

    def update_models(self, models: ModelsConfig):
        self._models.update(models)

    def to_entry(self, message: str, name: str = "default") -> Entry:
        model, defaults = self._models.get(name, self._models["default"])
        return model(message=message, **defaults)

    async def log_prepared(
        self,
        message: str,
        name: str = "default",
        template: str | None = None,
    ):
        await self.log(
            self.to_entry(message, name),
            template=template,
        )

    async def log(
        self,
        entry_or_log: Entry | Log,
        template: str | None = None,
    ):
        entry = entry_or_log.entry if isinstance(entry_or_log, Log) else entry_or_log

        if self._config.enabled(self.name, entry.level) is False:
            return

        if isinstance(entry_or_log, Log):
            log = entry_or_log

        else:
            filename, line_number, function_name = find_caller()
            log = Log(
                entry=entry,
                filename=filename,
                function_name=function_name,
                line_number=line_number,
            )

        loop = asyncio.get_running_loop()

        # Settings are context variables, so resolve them on the loop
        # thread before handing work to the executor.
        if self.logfile is not None:
            logfile = self._resolve_logfile()

            async with self._file_lock:
                await loop.run_in_executor(
                    None,
                    self._write_to_file,
                    log,
                    logfile,
                )

            return

        stream = sys.stdout if self._config.output == "stdout" else sys.stderr
        await loop.run_in_executor(
            None,
            self._write_to_console,
            stream,
            self._format(log, template or self.template),
        )

    async def close(self):
        if self._file is None or self._file.closed:
            return

        async with self._file_lock:
            await asyncio.get_running_loop().run_in_executor(
                None,
                self._file.close,
            )

    def _resolve_logfile(self) -> pathlib.Path:
        logfile = self.logfile
        if self._config.directory and not logfile.is_absolute():
            logfile = pathlib.Path(self._config.directory) / logfile

        return logfile.absolute()

    def _format(self, log: Log, template: str) -> str:
        return log.entry.to_template(
            template,
            context={
                "filename": log.filename,
                "function_name": log.function_name,
                "line_number": log.line_number,
                "thread_id": log.thread_id,
                "timestamp": log.timestamp,
            },
        )

    def _write_to_console(self, stream: TextIO, line: str):
        if stream.closed is False:
            stream.write(line + "\n")
            stream.flush()

    def _write_to_file(self, log: Log, logfile: pathlib.Path):
        if self._file is None or self._file.closed:
            logfile.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(logfile, "ab")

        self._file.write(msgspec.json.encode(log) + b"\n")
        self._file.flush()
