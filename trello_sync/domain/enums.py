from __future__ import annotations

from enum import StrEnum


class SyncState(StrEnum):
    UNSYNCED = "unsynced"
    SYNCED = "synced"
    DEPRECATED = "deprecated"


class ChecklistPolicy(StrEnum):
    STRICT = "strict"
    LOOSE = "loose"


class DeletionPolicy(StrEnum):
    KEEP = "keep"
    DELETE = "delete"
