from __future__ import annotations


class TrelloSyncError(Exception):
    """Base exception for comment/board synchronization errors."""


class MissingCredentials(TrelloSyncError):
    """API key, token or target list is not configured."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"Missing Trello settings: {', '.join(missing)}")
        self.missing = missing


class RemoteCallFailure(TrelloSyncError):
    """A Trello API request failed (transport, auth or HTTP status)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ParseMismatch(TrelloSyncError):
    """A stored comment is no longer present verbatim in the source text."""
