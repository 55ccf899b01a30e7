from .connection import Connection as Connection
from .protocol import ElkoClientProtocol as ElkoClientProtocol
from .queue import MessageQueue as MessageQueue
from .receive_buffer import (
    MAX_FRAME_LENGTH as MAX_FRAME_LENGTH,
    ReceiveBuffer as ReceiveBuffer,
)
from .state import (
    ConnectionState as ConnectionState,
    InvalidStateTransition as InvalidStateTransition,
    can_transition as can_transition,
)
