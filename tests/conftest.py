from __future__ import annotations

from itertools import count
from typing import Optional, Sequence

import pytest

from trello_sync.domain.entities import RemoteCard, RemoteChecklist, RemoteCheckItem
from trello_sync.domain.errors import RemoteCallFailure
from trello_sync.infra.db import create_db_engine, create_session_factory, init_db
from trello_sync.infra.repository import TaskStore

LIST_ID = "list-todo"


class FakeBoard:
    def __init__(self) -> None:
        self.cards: dict[str, RemoteCard] = {}
        self.checklists: dict[str, list[RemoteChecklist]] = {}
        self.items: dict[str, list[RemoteCheckItem]] = {}
        self.calls: list[tuple] = []
        self.fail_on: set[str] = set()
        self._ids = count(1)

    def _call(self, name: str, *args: object) -> None:
        self.calls.append((name, *args))
        if name in self.fail_on:
            raise RemoteCallFailure(f"{name} failed with HTTP 500: boom", status_code=500)

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}{next(self._ids)}"

    def add_card(self, name: str, id_list: str = LIST_ID) -> RemoteCard:
        card = RemoteCard(id=self._next_id("card"), name=name, id_list=id_list)
        self.cards[card.id] = card
        self.checklists[card.id] = []
        return card

    def move_card(self, card_id: str, id_list: str) -> None:
        card = self.cards[card_id]
        self.cards[card_id] = RemoteCard(id=card.id, name=card.name, id_list=id_list)

    def set_items(self, checklist_id: str, names: Sequence[str]) -> None:
        self.items[checklist_id] = [
            RemoteCheckItem(id=self._next_id("item"), name=name) for name in names
        ]

    def list_cards(self, list_id: str) -> list[RemoteCard]:
        self._call("list_cards", list_id)
        return [card for card in self.cards.values() if card.id_list == list_id]

    def get_card(self, card_id: str) -> RemoteCard:
        self._call("get_card", card_id)
        return self.cards[card_id]

    def create_card(
        self,
        list_id: str,
        name: str,
        desc: str,
        label_ids: Optional[Sequence[str]] = None,
    ) -> RemoteCard:
        self._call("create_card", list_id, name, desc, list(label_ids or []))
        return self.add_card(name, list_id)

    def delete_card(self, card_id: str) -> None:
        self._call("delete_card", card_id)
        self.cards.pop(card_id, None)

    def get_card_checklists(self, card_id: str) -> list[RemoteChecklist]:
        self._call("get_card_checklists", card_id)
        return list(self.checklists.get(card_id, []))

    def create_checklist(self, card_id: str, name: str) -> RemoteChecklist:
        self._call("create_checklist", card_id, name)
        checklist = RemoteChecklist(id=self._next_id("checklist"), name=name)
        self.checklists.setdefault(card_id, []).append(checklist)
        self.items[checklist.id] = []
        return checklist

    def get_checklist_items(self, checklist_id: str) -> list[RemoteCheckItem]:
        self._call("get_checklist_items", checklist_id)
        return list(self.items[checklist_id])

    def add_check_item(self, checklist_id: str, name: str) -> RemoteCheckItem:
        self._call("add_check_item", checklist_id, name)
        item = RemoteCheckItem(id=self._next_id("item"), name=name)
        self.items[checklist_id].append(item)
        return item

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]


class RecordingNotifier:
    def __init__(self) -> None:
        self.infos: list[str] = []
        self.errors: list[str] = []

    def info(self, message: str) -> None:
        self.infos.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)


@pytest.fixture
def board() -> FakeBoard:
    return FakeBoard()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'tasks.db'}"


@pytest.fixture
def store(database_url) -> TaskStore:
    engine = create_db_engine(database_url)
    init_db(engine)
    yield TaskStore(create_session_factory(engine))
    engine.dispose()
