import os
from typing import Callable, Mapping, TypeVar, Union

from dotenv import dotenv_values
from pydantic import BaseModel

from .env import Env

T = TypeVar("T", bound=BaseModel)

PrimaryType = Union[str, int, bool, float, bytes]


def _convert(
    source: Mapping[str, str | None],
    types_map: dict[str, Callable[[str], PrimaryType]],
) -> dict[str, PrimaryType]:
    return {
        name: types_map[name](value)
        for name, value in source.items()
        if name in types_map and value
    }


def load_env(
    default: type[Env] = Env,
    env_file: str | None = None,
    override: T | None = None,
) -> T:
    """
    Build settings from, in increasing precedence, the ``.env`` file, the
    process environment and any explicitly set fields of ``override``.
    """
    types_map = default.types_map()

    if env_file is None:
        env_file = ".env"

    values: dict[str, PrimaryType] = {}
    if env_file and os.path.exists(env_file):
        values.update(_convert(dotenv_values(dotenv_path=env_file), types_map))

    values.update(_convert(os.environ, types_map))

    model = default
    if override is not None:
        values.update(override.model_dump(exclude_unset=True))
        model = type(override)

    return model(
        **{name: value for name, value in values.items() if value is not None}
    )
