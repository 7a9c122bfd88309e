"""
Error taxonomy shared by clients, gateway and pipelines.
"""

from enum import Enum


class FailureKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    UPSTREAM = "upstream"
    PERSISTENCE = "persistence"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    FailureKind.VALIDATION: 400,
    FailureKind.NOT_FOUND: 404,
    FailureKind.UPSTREAM: 502,
    FailureKind.PERSISTENCE: 500,
}


class StorageError(Exception):
    """A blob or row operation failed in the store."""


class UpstreamError(Exception):
    """An external service answered with an error."""


class CompletionError(UpstreamError):
    """Completion API returned a non-success status. Message is the raw body."""

    def __init__(self, status_code: int, body: str):
        super().__init__(body)
        self.status_code = status_code
        self.body = body


class OcrError(UpstreamError):
    """OCR job could not be submitted, failed, or returned nothing usable."""


class OcrTimeoutError(OcrError):
    """OCR job still queued after the last poll attempt."""


class NotFoundError(Exception):
    """A requested row does not exist."""
