from typing import Optional


class WatchError(Exception):
    """Base for errors that are reported back to whoever issued a command."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(WatchError):
    status_code = 404


class DuplicateWatch(WatchError):
    status_code = 409


class UnknownWatch(WatchError):
    status_code = 404


class TransientFetchError(WatchError):
    status_code = 502


class SinkDeliveryError(WatchError):
    status_code = 502

    def __init__(self, message: str, destination: Optional[str] = None):
        super().__init__(message)
        self.destination = destination
