from __future__ import annotations

from typing import Callable, Dict, Literal, Union

from pydantic import BaseModel, StrictBool, StrictInt, StrictStr, field_validator

from .time_parser import TimeParser

PrimaryType = Union[str, int, float, bytes, bool]


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Env(BaseModel):
    SERVICE_ID: StrictStr | None = None
    INSTANCE_ID: StrictInt | None = None
    ELKO_HOST: StrictStr = "127.0.0.1"
    ELKO_PORT: StrictInt = 9000
    ELKO_CONNECT_TIMEOUT: StrictStr = "5s"
    ELKO_HELLO_TIMEOUT: StrictStr = "5s"
    ELKO_AWAIT_SERVER_HELLO: StrictBool = True
    ELKO_HEARTBEAT_INTERVAL: StrictStr = "5s"
    ELKO_LIVENESS_TIMEOUT: StrictStr = "0s"
    ELKO_REQUEST_TIMEOUT: StrictStr = "30s"
    ELKO_MAX_OUTGOING_FRAMES: StrictInt = 0
    ELKO_MAX_FRAME_SIZE: StrictInt = 64 * 1024 * 1024
    ELKO_LOG_LEVEL: Literal[
        "trace", "debug", "info", "warn", "error", "critical", "fatal"
    ] = "info"
    ELKO_LOG_OUTPUT: Literal["stdout", "stderr"] = "stderr"
    ELKO_LOGS_PATH: StrictStr | None = None

    @field_validator(
        "ELKO_CONNECT_TIMEOUT",
        "ELKO_HELLO_TIMEOUT",
        "ELKO_HEARTBEAT_INTERVAL",
        "ELKO_LIVENESS_TIMEOUT",
        "ELKO_REQUEST_TIMEOUT",
    )
    @classmethod
    def validate_duration(cls, value: str) -> str:
        TimeParser().parse(value)
        return value

    @classmethod
    def types_map(cls) -> Dict[str, Callable[[str], PrimaryType]]:
        return {
            "SERVICE_ID": str,
            "INSTANCE_ID": int,
            "ELKO_HOST": str,
            "ELKO_PORT": int,
            "ELKO_CONNECT_TIMEOUT": str,
            "ELKO_HELLO_TIMEOUT": str,
            "ELKO_AWAIT_SERVER_HELLO": _parse_bool,
            "ELKO_HEARTBEAT_INTERVAL": str,
            "ELKO_LIVENESS_TIMEOUT": str,
            "ELKO_REQUEST_TIMEOUT": str,
            "ELKO_MAX_OUTGOING_FRAMES": int,
            "ELKO_MAX_FRAME_SIZE": int,
            "ELKO_LOG_LEVEL": str,
            "ELKO_LOG_OUTPUT": str,
            "ELKO_LOGS_PATH": str,
        }

    def seconds(self, name: str) -> float:
        return TimeParser().parse(getattr(self, name))

    @property
    def connect_timeout(self) -> float:
        return self.seconds("ELKO_CONNECT_TIMEOUT")

    @property
    def hello_timeout(self) -> float:
        return self.seconds("ELKO_HELLO_TIMEOUT")

    @property
    def heartbeat_interval(self) -> float:
        return self.seconds("ELKO_HEARTBEAT_INTERVAL")

    @property
    def liveness_timeout(self) -> float:
        return self.seconds("ELKO_LIVENESS_TIMEOUT")

    @property
    def request_timeout(self) -> float:
        return self.seconds("ELKO_REQUEST_TIMEOUT")
