from elko.protocol.errors import ElkoError
from elko.protocol.messages import RemoteError


class NotReadyError(ElkoError):
    """An operation was attempted outside of the READY state."""
    pass


class RequestError(ElkoError):
    """
    Base class for failures local to one request. A request error never
    closes the connection.
    """

    def __init__(self, message: str, request_id: int = 0) -> None:
        super().__init__(message)
        self.request_id = request_id


class DeadlineExceeded(RequestError):
    pass


class Cancelled(RequestError):
    pass


class RemoteRequestError(RequestError):
    """The coordinator answered the request with an error."""

    def __init__(
        self,
        service: str,
        error: RemoteError,
        request_id: int = 0,
    ) -> None:
        super().__init__(
            f"Request to {service} failed - {error}",
            request_id=request_id,
        )
        self.service = service
        self.error = error
