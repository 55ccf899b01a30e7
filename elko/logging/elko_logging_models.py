from .models import Entry, LogLevel


class ClientEntry(Entry, kw_only=True):
    """Fields every client log line carries."""

    service_id: str
    instance_id: int | None = None
    host: str
    port: int


class ClientTrace(ClientEntry, kw_only=True):
    level: LogLevel = LogLevel.TRACE


class ClientDebug(ClientEntry, kw_only=True):
    level: LogLevel = LogLevel.DEBUG


class ClientInfo(ClientEntry, kw_only=True):
    level: LogLevel = LogLevel.INFO


class ClientWarn(ClientEntry, kw_only=True):
    level: LogLevel = LogLevel.WARN


class ClientError(ClientEntry, kw_only=True):
    level: LogLevel = LogLevel.ERROR


class ClientFatal(ClientEntry, kw_only=True):
    level: LogLevel = LogLevel.FATAL
