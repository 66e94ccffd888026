from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import httpx

from trello_sync.config import Settings
from trello_sync.domain.entities import RemoteCard, RemoteChecklist, RemoteCheckItem
from trello_sync.domain.errors import RemoteCallFailure

log = logging.getLogger(__name__)


def _card(data: dict[str, Any]) -> RemoteCard:
    return RemoteCard(id=data["id"], name=data.get("name", ""), id_list=data.get("idList", ""))


class TrelloClient:
    """Trello REST client for the card and checklist calls used by the sync passes.

    Key and token travel as query parameters; they are kept out of error
    messages and log lines.
    """

    def __init__(
        self,
        api_key: str,
        api_token: str,
        base_url: str = "https://api.trello.com/1",
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url,
            params={"key": api_key, "token": api_token},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> TrelloClient:
        settings.require_credentials()
        return cls(
            api_key=settings.api_key or "",
            api_token=settings.api_token or "",
            base_url=settings.api_url,
            timeout=settings.http_timeout_sec,
        )

    def __enter__(self) -> TrelloClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def list_cards(self, list_id: str) -> list[RemoteCard]:
        data = self._request("GET", f"/lists/{list_id}/cards")
        return [_card(item) for item in data]

    def get_card(self, card_id: str) -> RemoteCard:
        return _card(self._request("GET", f"/cards/{card_id}"))

    def create_card(
        self,
        list_id: str,
        name: str,
        desc: str,
        label_ids: Optional[Sequence[str]] = None,
    ) -> RemoteCard:
        data = self._request(
            "POST",
            "/cards",
            json={
                "name": name,
                "desc": desc,
                "pos": "bottom",
                "idList": list_id,
                "idLabels": list(label_ids or []),
            },
        )
        return _card(data)

    def delete_card(self, card_id: str) -> None:
        self._request("DELETE", f"/cards/{card_id}")

    def get_card_checklists(self, card_id: str) -> list[RemoteChecklist]:
        data = self._request("GET", f"/cards/{card_id}/checklists")
        return [RemoteChecklist(id=item["id"], name=item.get("name", "")) for item in data]

    def create_checklist(self, card_id: str, name: str) -> RemoteChecklist:
        data = self._request(
            "POST", "/checklists", json={"name": name, "idCard": card_id, "pos": "bottom"}
        )
        return RemoteChecklist(id=data["id"], name=data.get("name", name))

    def get_checklist_items(self, checklist_id: str) -> list[RemoteCheckItem]:
        data = self._request("GET", f"/checklists/{checklist_id}/checkItems")
        items = [
            RemoteCheckItem(
                id=item["id"],
                name=item.get("name", ""),
                state=item.get("state", "incomplete"),
            )
            for item in data
        ]
        positions = {item["id"]: item.get("pos", 0) for item in data}
        return sorted(items, key=lambda item: positions[item.id])

    def add_check_item(self, checklist_id: str, name: str) -> RemoteCheckItem:
        data = self._request(
            "POST", f"/checklists/{checklist_id}/checkItems", json={"name": name, "pos": "bottom"}
        )
        return RemoteCheckItem(id=data["id"], name=data.get("name", name))

    def _request(self, method: str, path: str, json: dict | None = None) -> Any:
        log.debug("Trello %s %s", method, path)
        try:
            response = self._client.request(method, path, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RemoteCallFailure(
                f"{method} {path} failed with HTTP {e.response.status_code}: "
                f"{e.response.text[:200]}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise RemoteCallFailure(f"{method} {path} failed: {type(e).__name__}: {e}") from e

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise RemoteCallFailure(f"{method} {path} returned invalid JSON") from e
