"""
Tests for the client's outgoing path against a capturing transport.
"""

import asyncio

import msgspec
import pytest

from elko.client import Client, Context, Identity, NotReadyError
from elko.connection import ConnectionState
from elko.env import Env
from elko.protocol import (
    BackpressureError,
    ClientOpcode,
    ClientRequest,
    FrameCodec,
    LogEntry,
    ServerRequest,
    ServerResponse,
)

from tests.mocks import CapturingTransport, split_frames


def create_ready_client(env: Env) -> tuple[Client, CapturingTransport]:
    client = Client(Identity("billing"), env=env)
    transport = CapturingTransport()

    client._connection.attach(transport)
    client._connection.state = ConnectionState.READY

    return client, transport


class TestOutgoingOrder:
    @pytest.mark.asyncio
    async def test_concurrent_producers_written_in_enqueue_order(
        self,
        env_factory,
        server_codec: FrameCodec,
    ) -> None:
        client, transport = create_ready_client(env_factory())
        writer = asyncio.create_task(client._write_loop())

        enqueued: list[bytes] = []

        async def produce(index: int):
            await asyncio.sleep(0)
            arg = str(index).encode()
            client.fire("orders.created", arg)
            enqueued.append(arg)

        await asyncio.gather(*[produce(index) for index in range(100)])

        async def written():
            while len(transport.writes) < 100:
                await asyncio.sleep(0.001)

        await asyncio.wait_for(written(), timeout=2)
        writer.cancel()
        await asyncio.gather(writer, return_exceptions=True)

        frames = [server_codec.unpack(frame) for frame in split_frames(transport.data)]

        assert len(frames) == 100
        assert all(opcode == ClientOpcode.REQUEST for opcode, _ in frames)
        assert [message.args[0] for _, message in frames] == enqueued
        assert all(message.id == 0 for _, message in frames)

    @pytest.mark.asyncio
    async def test_bounded_outgoing_queue(self, env_factory) -> None:
        client, _ = create_ready_client(env_factory(ELKO_MAX_OUTGOING_FRAMES=2))

        client.fire("a")
        client.fire("b")

        with pytest.raises(BackpressureError):
            client.fire("c")

    @pytest.mark.asyncio
    async def test_log_forwards_entry(
        self,
        env_factory,
        server_codec: FrameCodec,
    ) -> None:
        client, transport = create_ready_client(env_factory())
        context = client.new_context()

        client.log("charged", data={"amount": 3}, context=context)

        writer = asyncio.create_task(client._write_loop())
        await asyncio.sleep(0.01)
        writer.cancel()
        await asyncio.gather(writer, return_exceptions=True)

        opcode, request = server_codec.unpack(transport.writes[0])
        entry = msgspec.msgpack.decode(request.args[0], type=LogEntry)

        assert opcode == ClientOpcode.REQUEST
        assert isinstance(request, ClientRequest)
        assert request.service == "log.persist"
        assert request.id == 0
        assert entry.message == "charged"
        assert entry.data == {"amount": 3}
        assert entry.service_id == "billing"
        assert entry.context == str(context.id)
        assert entry.file.endswith("test_outgoing_order.py")


class TestClientGuards:
    @pytest.mark.asyncio
    async def test_operations_require_ready(self, env_factory) -> None:
        client = Client("billing", env=env_factory())

        with pytest.raises(NotReadyError):
            client.fire("svc")

        with pytest.raises(NotReadyError):
            await client.request("svc")

        with pytest.raises(NotReadyError):
            client.shutdown()

    def test_identity_validation(self) -> None:
        with pytest.raises(ValueError):
            Identity("")

        with pytest.raises(ValueError):
            Identity("billing", instance_id=2**64)

        with pytest.raises(ValueError):
            Identity("billing", instance_id=-1)

        assert Identity("billing", instance_id=2**64 - 1).instance_id == 2**64 - 1

    def test_correlation_ids_are_unique(self, env_factory) -> None:
        client = Client("billing", env=env_factory())

        ids = {client.new_context().id for _ in range(1000)}

        assert len(ids) == 1000
        assert 0 not in ids

    def test_handle_decorator_registers(self, env_factory) -> None:
        client = Client("billing", env=env_factory())

        @client.handle("orders.create")
        def create_order(request, context):
            return b"ok"

        assert client._handlers["orders.create"] is create_order


class TestCorrelationIds:
    @pytest.mark.asyncio
    async def test_handler_context_gets_own_id(
        self,
        env_factory,
        server_codec: FrameCodec,
    ) -> None:
        client, transport = create_ready_client(env_factory())
        writer = asyncio.create_task(client._write_loop())

        # A handler context carries the coordinator's id, which can collide
        # with ids the client allocates for its own requests.
        reserve = asyncio.create_task(
            client.request("inventory.reserve", context=Context(1))
        )
        await asyncio.sleep(0)
        check = asyncio.create_task(client.request("inventory.check"))

        async def written():
            while len(transport.writes) < 2:
                await asyncio.sleep(0.001)

        await asyncio.wait_for(written(), timeout=2)

        requests = [
            message
            for _, message in (
                server_codec.unpack(frame) for frame in split_frames(transport.data)
            )
        ]
        ids = {request.service: request.id for request in requests}

        assert client.pending_requests == 2
        assert ids["inventory.reserve"] != ids["inventory.check"]

        for request in requests:
            await client._accept_response(
                ServerResponse(id=request.id, result=request.service.encode())
            )

        assert await reserve == b"inventory.reserve"
        assert await check == b"inventory.check"

        writer.cancel()
        await asyncio.gather(writer, return_exceptions=True)

    @pytest.mark.asyncio
    async def test_next_id_skips_pending(self, env_factory) -> None:
        client, _ = create_ready_client(env_factory())

        client._pending.register(Context(2))

        ids = [client.new_context().id for _ in range(3)]

        assert ids == [1, 3, 4]

        client._pending.forget(2)


class TestResponseBackpressure:
    @pytest.mark.asyncio
    async def test_full_queue_drops_response(self, env_factory) -> None:
        client, _ = create_ready_client(env_factory(ELKO_MAX_OUTGOING_FRAMES=1))
        client._failure = asyncio.get_running_loop().create_future()
        client.register("orders.get", lambda request, context: b"order")

        client.fire("orders.created")
        client._dispatch(ServerRequest(id=5, service="orders.get"))

        await asyncio.gather(*client._dispatches)

        assert not client._failure.done()
        assert [frame.message.service for frame in client._outgoing.clear()] == [
            "orders.created"
        ]
