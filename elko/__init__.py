from .client import (
    Cancelled as Cancelled,
    Client as Client,
    Context as Context,
    DeadlineExceeded as DeadlineExceeded,
    Identity as Identity,
    NotReadyError as NotReadyError,
    RemoteRequestError as RemoteRequestError,
    RequestError as RequestError,
    Termination as Termination,
)
from .connection import ConnectionState as ConnectionState
from .env import Env as Env, load_env as load_env
from .protocol import (
    ElkoError as ElkoError,
    Header as Header,
    ProtocolError as ProtocolError,
    ServerRequest as ServerRequest,
    TransportError as TransportError,
)
from .runner import run as run
