"""Exceptions raised by filtop."""


class FiltopError(Exception):
    """Base class for filtop errors."""


class DecodeError(FiltopError):
    """A payload did not have the structure the agent is expected to report."""


class FetchError(FiltopError):
    """A request to the agent failed: transport, status, JSON or shape."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason
