"""
Shared fixtures for the elko test suite.
"""

import pytest

from elko.env import Env
from elko.logging import LoggingConfig
from elko.protocol import FrameCodec, derive_key


@pytest.fixture(autouse=True)
def configure_log_level():
    config = LoggingConfig()
    config.update(log_level="fatal")
    yield
    config.update(log_level="info")


@pytest.fixture
def service_id() -> str:
    return "billing"


@pytest.fixture
def key(service_id: str) -> bytes:
    return derive_key(service_id)


@pytest.fixture
def client_codec(key: bytes) -> FrameCodec:
    return FrameCodec.for_client(key)


@pytest.fixture
def server_codec(key: bytes) -> FrameCodec:
    return FrameCodec.for_server(key)


@pytest.fixture
def env_factory():
    def create_env(port: int = 9000, **overrides) -> Env:
        values = {
            "ELKO_HOST": "127.0.0.1",
            "ELKO_PORT": port,
            "ELKO_CONNECT_TIMEOUT": "1s",
            "ELKO_HELLO_TIMEOUT": "1s",
            "ELKO_HEARTBEAT_INTERVAL": "0s",
            "ELKO_REQUEST_TIMEOUT": "2s",
        }
        values.update(overrides)

        return Env(**values)

    return create_env
