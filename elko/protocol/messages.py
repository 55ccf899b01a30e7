import datetime
from typing import Any

import msgspec


class Header(msgspec.Struct, kw_only=True):
    auth: str = ""
    trace_id: str = ""


class RemoteError(msgspec.Struct, kw_only=True):
    type: str = ""
    message: str = ""
    args: list[str] = msgspec.field(default_factory=list)

    def __str__(self) -> str:
        if self.type and self.message:
            return f"{self.type}: {self.message}"

        if self.type and self.args:
            return f"{self.type}: {', '.join(self.args)}"

        return self.message or self.type or "Error"


class ClientHello(msgspec.Struct, kw_only=True):
    service_id: str
    instance_id: int | None = None


class ClientRequest(msgspec.Struct, kw_only=True):
    id: int
    service: str
    args: list[bytes] = msgspec.field(default_factory=list)
    headers: Header = msgspec.field(default_factory=Header)
    context: str = ""


class ClientResponse(msgspec.Struct, kw_only=True):
    id: int
    result: bytes | None = None
    error: RemoteError | None = None


class ClientShutdown(msgspec.Struct, kw_only=True):
    reason: str = ""


class ServerHello(msgspec.Struct, kw_only=True):
    node_id: str = ""


class ServerRequest(msgspec.Struct, kw_only=True):
    id: int
    service: str
    args: list[bytes] = msgspec.field(default_factory=list)
    headers: Header = msgspec.field(default_factory=Header)
    context: str = ""


class ServerResponse(msgspec.Struct, kw_only=True):
    id: int
    result: bytes | None = None
    error: RemoteError | None = None


class ServerShutdown(msgspec.Struct, kw_only=True):
    reason: str = ""


class LogEntry(msgspec.Struct, kw_only=True, omit_defaults=True):
    context: str = ""
    message: str = ""
    data: Any = None
    error: bool = False
    service_id: str = ""
    instance_id: int | None = None
    timestamp: str = msgspec.field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc).isoformat()
    )
    file: str = ""
    line: int = 0
    stacktrace: str = ""
