"""
errors.py — Failure taxonomy for upstream news sources.

  TransportFailure — network error, bad HTTP status, or undecodable payload
  EmptyResult      — the provider answered but had nothing for us
  MalformedRecord  — one record inside a batch failed validation

Adapters raise the first two; the dispatcher treats both as "try the next
source". MalformedRecord never leaves an adapter: the record is dropped and
the rest of the batch survives.
"""


class FeedSourceError(Exception):
    """Base class for everything an adapter can signal."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


class TransportFailure(FeedSourceError):
    pass


class EmptyResult(FeedSourceError):
    def __init__(self, source: str, message: str = "no items returned") -> None:
        super().__init__(source, message)


class MalformedRecord(FeedSourceError):
    pass
