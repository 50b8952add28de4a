"""Errors raised by upstream adapters and understood by the core."""

from __future__ import annotations


class UpstreamError(RuntimeError):
    """An upstream platform answered with a non-2xx status or an error body."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
