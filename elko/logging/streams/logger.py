import asyncio
import sys
import threading

from elko.logging.models import Entry, Log, ModelsConfig

from .logger_context import LoggerContext
from .logger_stream import to_logfile_path


class Logger:
    def __init__(self) -> None:
        self._contexts: dict[str, LoggerContext] = {}

    def __getitem__(self, name: str) -> LoggerContext:
        if self._contexts.get(name) is None:
            self._contexts[name] = LoggerContext(name=name)

        return self._contexts[name]

    def configure(
        self,
        name: str = "default",
        template: str | None = None,
        path: str | None = None,
        models: ModelsConfig | None = None,
    ):
        self._contexts[name] = LoggerContext(
            name=name,
            template=template,
            path=path,
            nested=True,
            models=models,
        )

    def context(
        self,
        name: str = "default",
        template: str | None = None,
        path: str | None = None,
        nested: bool = True,
        models: ModelsConfig | None = None,
    ) -> LoggerContext:
        context = self._contexts.get(name)

        if context is None:
            context = LoggerContext(
                name=name,
                template=template,
                path=path,
                nested=nested,
                models=models,
            )
            self._contexts[name] = context

            return context

        if template:
            context.stream.template = template

        if path:
            context.stream.logfile = to_logfile_path(name, path)

        if models:
            context.stream.update_models(models)

        context.nested = nested

        return context

    async def log(
        self,
        entry: Entry,
        name: str = "default",
        template: str | None = None,
    ):
        frame = sys._getframe(1)
        code = frame.f_code

        async with self.context(name=name) as stream:
            await stream.log(
                Log(
                    entry=entry,
                    filename=code.co_filename,
                    function_name=code.co_name,
                    line_number=frame.f_lineno,
                    thread_id=threading.get_native_id(),
                ),
                template=template,
            )

    async def close(self):
        await asyncio.gather(*[
            context.stream.close() for context in self._contexts.values()
        ])
