from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from trello_sync.config import Settings
from trello_sync.domain.board import BoardClient
from trello_sync.domain.codec import CommentCodec, clean_item, locate, replace_spans, serialize
from trello_sync.domain.entities import ParsedBlock, Task
from trello_sync.domain.errors import MissingCredentials, ParseMismatch, RemoteCallFailure
from trello_sync.infra.repository import TaskStore
from trello_sync.infra.sources import line_ending, read_source, write_source

from .notifier import LogNotifier, Notifier

log = logging.getLogger(__name__)


@dataclass
class SyncReport:
    files: list[str] = field(default_factory=list)
    rewritten: list[str] = field(default_factory=list)
    deprecated: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    failed_files: list[str] = field(default_factory=list)


class InboundSync:
    """Pulls checklist edits and list moves from Trello back into the source comments."""

    def __init__(
        self,
        store: TaskStore,
        board: BoardClient,
        list_id: str,
        codec: CommentCodec | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._store = store
        self._board = board
        self._list_id = list_id
        self._codec = codec or CommentCodec()
        self._notifier = notifier or LogNotifier()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: TaskStore,
        board: BoardClient,
        notifier: Notifier | None = None,
    ) -> InboundSync:
        settings.require_credentials()
        return cls(
            store,
            board,
            list_id=settings.list_id or "",
            codec=CommentCodec(settings.checklist_policy),
            notifier=notifier,
        )

    def run(self) -> SyncReport:
        if not self._list_id:
            raise MissingCredentials(["TRELLO_LIST_ID"])

        report = SyncReport()
        for path, tasks in self._store.load_all().items():
            self._sync_file(path, tasks, report)
        return report

    def sync_file(self, path: str | Path) -> SyncReport:
        if not self._list_id:
            raise MissingCredentials(["TRELLO_LIST_ID"])

        report = SyncReport()
        self._sync_file(str(path), self._store.load(path), report)
        return report

    def _sync_file(self, path: str, tasks: list[Task], report: SyncReport) -> None:
        if not any(task.pollable for task in tasks):
            return

        try:
            text = read_source(path)
        except FileNotFoundError:
            log.warning("Tracked file %s no longer exists, skipping", path)
            report.missing.append(path)
            return
        except (OSError, UnicodeDecodeError) as e:
            self._file_failed(path, "read", e, report)
            return

        report.files.append(path)
        blocks = self._codec.parse(text)
        taken: set[int] = set()
        replacements: list[tuple[ParsedBlock, str]] = []
        updated: list[Task] = []

        for task in tasks:
            block = self._locate(blocks, task, taken)
            if not task.pollable:
                updated.append(task)
                continue
            updated.append(self._pull(task, block, replacements, report))

        rewritten = [
            index for index, (old, new) in enumerate(zip(tasks, updated)) if new.comment != old.comment
        ]
        new_text = replace_spans(text, replacements)
        if new_text != text:
            try:
                write_source(path, new_text)
            except OSError as e:
                self._file_failed(path, "write", e, report)
                # keep deprecations, drop rewrites that never reached the disk
                for index in rewritten:
                    updated[index] = tasks[index]
                rewritten = []
            else:
                log.info("Rewrote %d comment(s) in %s", len(replacements), path)
        report.rewritten.extend(updated[index].title for index in rewritten)
        if updated != tasks:
            self._store.replace(path, updated)

    def _file_failed(self, path: str, action: str, error: Exception, report: SyncReport) -> None:
        log.error("Could not %s %s: %s", action, path, error)
        self._notifier.error(f"Failed to {action} {path}: {error}")
        report.failed_files.append(path)

    @staticmethod
    def _locate(blocks: list[ParsedBlock], task: Task, taken: set[int]) -> ParsedBlock | None:
        try:
            return locate(blocks, task.comment, taken)
        except ParseMismatch:
            log.debug("Comment of %r not found verbatim, leaving text alone", task.title)
            return None

    def _pull(
        self,
        task: Task,
        block: ParsedBlock | None,
        replacements: list[tuple[ParsedBlock, str]],
        report: SyncReport,
    ) -> Task:
        try:
            card = self._board.get_card(task.card_id or "")
            if card.id_list != self._list_id:
                self._notifier.info(
                    f"Trello card moved out of the list, task deprecated: {task.title}"
                )
                report.deprecated.append(task.title)
                return task.deprecate()
            items = self._board.get_checklist_items(task.checklist_id or "")
        except RemoteCallFailure as e:
            self._notifier.error(f"Failed to sync Trello task {task.title!r}: {e}")
            report.failed.append(task.title)
            return task

        names = tuple(item for item in (clean_item(item.name) for item in items) if item)
        comment = serialize(task.title, names, newline=line_ending(task.comment))
        if block is None or comment == task.comment:
            report.unchanged.append(task.title)
            return task

        replacements.append((block, comment))
        return task.rewritten(comment, names)
