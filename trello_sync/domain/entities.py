from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from .enums import SyncState
from .fingerprint import fingerprint


@dataclass(frozen=True)
class Task:
    title: str
    checklist: tuple[str, ...]
    comment: str
    state: SyncState = SyncState.UNSYNCED
    card_id: Optional[str] = None
    checklist_id: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "checklist", tuple(self.checklist))
        object.__setattr__(self, "state", SyncState(self.state))
        if self.state == SyncState.UNSYNCED and (self.card_id or self.checklist_id):
            raise ValueError(f"Unsynced task {self.title!r} cannot reference a card")
        if self.state != SyncState.UNSYNCED and not self.card_id:
            raise ValueError(f"Task {self.title!r} in state {self.state} needs a card id")

    @property
    def fingerprint(self) -> str:
        return fingerprint(self.comment)

    @property
    def deprecated(self) -> bool:
        return self.state == SyncState.DEPRECATED

    @property
    def pollable(self) -> bool:
        return self.state == SyncState.SYNCED and bool(self.checklist_id)

    def linked(self, card_id: str, checklist_id: Optional[str] = None) -> Task:
        return replace(
            self, state=SyncState.SYNCED, card_id=card_id, checklist_id=checklist_id
        )

    def carried_from(self, previous: Task) -> Task:
        return replace(
            self,
            state=previous.state,
            card_id=previous.card_id,
            checklist_id=previous.checklist_id,
        )

    def deprecate(self) -> Task:
        return replace(self, state=SyncState.DEPRECATED)

    def rewritten(self, comment: str, checklist: tuple[str, ...]) -> Task:
        return replace(self, comment=comment, checklist=tuple(checklist))


@dataclass(frozen=True)
class ParsedBlock:
    title: str
    checklist: tuple[str, ...]
    comment: str
    start: int
    end: int
    final: bool = False

    def to_task(self) -> Task:
        return Task(title=self.title, checklist=self.checklist, comment=self.comment)


@dataclass(frozen=True)
class RemoteCard:
    id: str
    name: str
    id_list: str


@dataclass(frozen=True)
class RemoteChecklist:
    id: str
    name: str


@dataclass(frozen=True)
class RemoteCheckItem:
    id: str
    name: str
    state: str = "incomplete"
