from __future__ import annotations

from typing import Any, Dict


class SourceUnavailable(Exception):
    """A content source (document store or remote feed) could not be reached."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class NormalizationError(Exception):
    """
    Recoverable failure for a single raw record. The record is dropped and
    counted; the rest of the batch keeps going.
    """

    def __init__(self, message: str, record_raw: Dict[str, Any] | None = None):
        super().__init__(message)
        self.record_raw = record_raw or {}


class DeliveryRejected(Exception):
    """The receiving push service refused an endpoint for good."""

    def __init__(self, status_code: int | None, reason: str):
        super().__init__(reason)
        self.status_code = status_code
        self.reason = reason
