import asyncio
import sys

from elko.client import Client, Handler, Identity, Termination
from elko.env import Env, load_env
from elko.logging import LoggingConfig


def create_client(
    service_id: str | None = None,
    handlers: dict[str, Handler] | None = None,
    env: Env | None = None,
    default_handler: Handler | None = None,
) -> Client:
    if env is None:
        env = load_env(Env)

    if env.SERVICE_ID:
        service_id = env.SERVICE_ID

    if not service_id:
        raise ValueError(
            "No service id given, pass one or set SERVICE_ID"
        )

    logging_config = LoggingConfig()
    logging_config.update(
        log_level=env.ELKO_LOG_LEVEL,
        log_output=env.ELKO_LOG_OUTPUT,
    )

    return Client(
        Identity(service_id, instance_id=env.INSTANCE_ID),
        env=env,
        handlers=handlers,
        default_handler=default_handler,
    )


async def start(
    service_id: str | None = None,
    handlers: dict[str, Handler] | None = None,
    env: Env | None = None,
    default_handler: Handler | None = None,
) -> Termination:
    client = create_client(
        service_id=service_id,
        handlers=handlers,
        env=env,
        default_handler=default_handler,
    )

    return await client.run()


def run(
    service_id: str | None = None,
    handlers: dict[str, Handler] | None = None,
    env: Env | None = None,
    default_handler: Handler | None = None,
) -> int:
    """
    Run one client session to completion and return the process exit code:
    0 when the session closed cleanly, 1 otherwise.
    """
    try:
        termination = asyncio.run(
            start(
                service_id=service_id,
                handlers=handlers,
                env=env,
                default_handler=default_handler,
            )
        )

    except (
        KeyboardInterrupt,
        asyncio.CancelledError,
    ):
        return 1

    return termination.exit_code


def main() -> None:
    service_id = sys.argv[1] if len(sys.argv) > 1 else None
    sys.exit(run(service_id))


if __name__ == "__main__":
    main()
