from .client import (
    Client as Client,
    Handler as Handler,
    Identity as Identity,
    OutgoingFrame as OutgoingFrame,
    Termination as Termination,
)
from .context import Context as Context
from .errors import (
    Cancelled as Cancelled,
    DeadlineExceeded as DeadlineExceeded,
    NotReadyError as NotReadyError,
    RemoteRequestError as RemoteRequestError,
    RequestError as RequestError,
)
from .pending import PendingRequests as PendingRequests
