from elko.logging.models import ModelsConfig

from .logger_stream import LoggerStream


class LoggerContext:
    """
    Async context manager around a named stream. Non-nested contexts close
    the stream's log file on exit.
    """

    def __init__(
        self,
        name: str = "default",
        template: str | None = None,
        path: str | None = None,
        nested: bool = False,
        models: ModelsConfig | None = None,
    ) -> None:
        self.name = name
        self.nested = nested
        self.stream = LoggerStream(
            name=name,
            template=template,
            path=path,
            models=models,
        )

    async def __aenter__(self) -> LoggerStream:
        return self.stream

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.nested is False:
            await self.stream.close()
