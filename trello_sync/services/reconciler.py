from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from trello_sync.config import Settings
from trello_sync.domain.board import BoardClient
from trello_sync.domain.codec import CommentCodec
from trello_sync.domain.entities import Task
from trello_sync.domain.enums import DeletionPolicy, SyncState
from trello_sync.domain.errors import MissingCredentials, RemoteCallFailure
from trello_sync.infra.repository import TaskStore
from trello_sync.infra.sources import read_source

from .notifier import LogNotifier, Notifier

log = logging.getLogger(__name__)

CHECKLIST_NAME = "Checklist"


@dataclass
class SaveReport:
    path: str
    created: list[str] = field(default_factory=list)
    adopted: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    deprecated: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


class Reconciler:
    """Pushes the task comments of a saved file to the target Trello list.

    Tasks are identified across saves by the fingerprint of their comment
    text. Matched tasks keep their card, new or edited ones get a new card
    with one checklist, deprecated ones are never touched again.
    """

    def __init__(
        self,
        store: TaskStore,
        board: BoardClient,
        list_id: str,
        red_label_id: Optional[str] = None,
        codec: CommentCodec | None = None,
        notifier: Notifier | None = None,
        adopt_by_title: bool = False,
        verify_on_save: bool = False,
        deletion_policy: DeletionPolicy = DeletionPolicy.KEEP,
    ) -> None:
        self._store = store
        self._board = board
        self._list_id = list_id
        self._red_label_id = red_label_id
        self._codec = codec or CommentCodec()
        self._notifier = notifier or LogNotifier()
        self._adopt_by_title = adopt_by_title
        self._verify_on_save = verify_on_save
        self._deletion_policy = DeletionPolicy(deletion_policy)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: TaskStore,
        board: BoardClient,
        notifier: Notifier | None = None,
    ) -> Reconciler:
        settings.require_credentials()
        return cls(
            store,
            board,
            list_id=settings.list_id or "",
            red_label_id=settings.red_label_id,
            codec=CommentCodec(settings.checklist_policy),
            notifier=notifier,
            adopt_by_title=settings.adopt_by_title,
            verify_on_save=settings.verify_on_save,
            deletion_policy=settings.deletion_policy,
        )

    def reconcile_file(self, path: str | Path) -> SaveReport:
        return self.reconcile(path, read_source(path))

    def reconcile(self, path: str | Path, text: str) -> SaveReport:
        if not self._list_id:
            raise MissingCredentials(["TRELLO_LIST_ID"])

        report = SaveReport(path=str(path))
        current = self._codec.active_tasks(text)
        previous = self._store.load(path)
        if not current and not previous:
            return report

        consumed: set[int] = set()
        tombstones = {task.title: task for task in previous if task.deprecated}
        result: list[Task] = []

        for task in current:
            match = self._match(task, previous, consumed)
            if match is None and task.title in tombstones:
                match = tombstones[task.title]

            if match is not None and match.deprecated:
                log.info("Skipping deprecated task %r", task.title)
                report.skipped.append(task.title)
                result.append(task.carried_from(match))
            elif match is not None and match.card_id:
                carried = task.carried_from(match)
                if self._verify_on_save:
                    carried = self._verify(carried, report)
                else:
                    report.unchanged.append(task.title)
                result.append(carried)
            else:
                result.append(self._publish(task, str(path), report))

        if self._deletion_policy == DeletionPolicy.DELETE:
            removed = [task for index, task in enumerate(previous) if index not in consumed]
            self._delete_removed(removed, report)

        self._store.replace(path, result)
        return report

    @staticmethod
    def _match(task: Task, previous: list[Task], consumed: set[int]) -> Task | None:
        fingerprint = task.fingerprint
        for index, candidate in enumerate(previous):
            if index not in consumed and candidate.fingerprint == fingerprint:
                consumed.add(index)
                return candidate
        return None

    def _verify(self, task: Task, report: SaveReport) -> Task:
        try:
            card = self._board.get_card(task.card_id or "")
        except RemoteCallFailure as e:
            self._notifier.error(f"Failed to verify Trello card for {task.title!r}: {e}")
            report.failed.append(task.title)
            return task
        if card.id_list != self._list_id:
            self._notifier.info(f"Trello card moved out of the list, task deprecated: {task.title}")
            report.deprecated.append(task.title)
            return task.deprecate()
        report.unchanged.append(task.title)
        return task

    def _publish(self, task: Task, path: str, report: SaveReport) -> Task:
        try:
            if self._adopt_by_title:
                existing = next(
                    (card for card in self._board.list_cards(self._list_id) if card.name == task.title),
                    None,
                )
                if existing:
                    task = task.linked(existing.id)
                    checklists = self._board.get_card_checklists(existing.id)
                    if checklists:
                        task = task.linked(existing.id, checklists[0].id)
                    self._notifier.info(f"Task already exists in Trello: {task.title}")
                    report.adopted.append(task.title)
                    return task

            card = self._board.create_card(
                self._list_id,
                task.title,
                f"[RED] Created from source: {path}",
                [self._red_label_id] if self._red_label_id else [],
            )
            task = task.linked(card.id)
            checklist = self._board.create_checklist(card.id, CHECKLIST_NAME)
            task = task.linked(card.id, checklist.id)
            for item in task.checklist:
                self._board.add_check_item(checklist.id, item)
        except RemoteCallFailure as e:
            self._notifier.error(f"Failed to create Trello card {task.title!r}: {e}")
            report.failed.append(task.title)
            return task

        log.info("Created card %s for %r", task.card_id, task.title)
        self._notifier.info(f"Trello card created: {task.title}")
        report.created.append(task.title)
        return task

    def _delete_removed(self, removed: list[Task], report: SaveReport) -> None:
        for task in removed:
            # cards of deprecated tasks belong to whoever moved them
            if task.state != SyncState.SYNCED:
                continue
            try:
                self._board.delete_card(task.card_id or "")
            except RemoteCallFailure as e:
                self._notifier.error(f"Failed to delete Trello card {task.title!r}: {e}")
                report.failed.append(task.title)
                continue
            self._notifier.info(f"Trello card deleted: {task.title}")
            report.deleted.append(task.title)
