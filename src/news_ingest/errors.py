from __future__ import annotations


class IngestError(Exception):
    pass


class FetchError(IngestError):
    def __init__(self, message: str, url: str | None = None, status: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status = status


class FetchCancelled(FetchError):
    pass


class ParseError(IngestError):
    pass


class ValidationError(IngestError):
    pass


class PersistenceError(IngestError):
    pass
