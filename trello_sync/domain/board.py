from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .entities import RemoteCard, RemoteChecklist, RemoteCheckItem


class BoardClient(Protocol):
    """Card and checklist operations the synchronizer needs from the board.

    Every call raises ``RemoteCallFailure`` on transport, auth or HTTP errors.
    """

    def list_cards(self, list_id: str) -> list[RemoteCard]: ...

    def get_card(self, card_id: str) -> RemoteCard: ...

    def create_card(
        self,
        list_id: str,
        name: str,
        desc: str,
        label_ids: Optional[Sequence[str]] = None,
    ) -> RemoteCard: ...

    def delete_card(self, card_id: str) -> None: ...

    def get_card_checklists(self, card_id: str) -> list[RemoteChecklist]: ...

    def create_checklist(self, card_id: str, name: str) -> RemoteChecklist: ...

    def get_checklist_items(self, checklist_id: str) -> list[RemoteCheckItem]: ...

    def add_check_item(self, checklist_id: str, name: str) -> RemoteCheckItem: ...
