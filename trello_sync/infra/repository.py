from __future__ import annotations

import json
import os
from collections.abc import Sequence
from pathlib import Path

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from trello_sync.domain.entities import Task
from trello_sync.domain.enums import SyncState

from .models import SourceFileModel, TrackedTaskModel


def file_key(path: str | Path) -> str:
    return os.path.abspath(os.fspath(path))


def _to_entity(model: TrackedTaskModel) -> Task:
    return Task(
        title=model.title,
        checklist=tuple(json.loads(model.checklist or "[]")),
        comment=model.comment,
        state=SyncState(model.state),
        card_id=model.card_id,
        checklist_id=model.checklist_id,
    )


def _to_model(task: Task, file_id: int, position: int) -> TrackedTaskModel:
    return TrackedTaskModel(
        file_id=file_id,
        position=position,
        title=task.title,
        checklist=json.dumps(list(task.checklist)),
        comment=task.comment,
        state=task.state.value,
        card_id=task.card_id,
        checklist_id=task.checklist_id,
    )


class TaskStore:
    """Persisted mapping from source file path to its last observed tasks."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def load(self, path: str | Path) -> list[Task]:
        with self._session_factory() as session:
            source = self._get_file(session, file_key(path))
            if not source:
                return []
            return self._tasks_for(session, source.id)

    def load_all(self) -> dict[str, list[Task]]:
        with self._session_factory() as session:
            sources = session.scalars(
                select(SourceFileModel).order_by(SourceFileModel.path)
            ).all()
            return {source.path: self._tasks_for(session, source.id) for source in sources}

    def files(self) -> list[str]:
        with self._session_factory() as session:
            return list(session.scalars(select(SourceFileModel.path).order_by(SourceFileModel.path)))

    def replace(self, path: str | Path, tasks: Sequence[Task]) -> None:
        key = file_key(path)
        with self._session_factory() as session:
            source = self._get_file(session, key)
            if not source:
                source = SourceFileModel(path=key)
                session.add(source)
                session.flush()
            session.execute(delete(TrackedTaskModel).where(TrackedTaskModel.file_id == source.id))
            session.add_all(
                _to_model(task, source.id, position) for position, task in enumerate(tasks)
            )
            session.commit()

    def forget(self, path: str | Path) -> None:
        with self._session_factory() as session:
            source = self._get_file(session, file_key(path))
            if not source:
                return
            session.execute(delete(TrackedTaskModel).where(TrackedTaskModel.file_id == source.id))
            session.delete(source)
            session.commit()

    @staticmethod
    def _get_file(session: Session, key: str) -> SourceFileModel | None:
        return session.scalar(select(SourceFileModel).where(SourceFileModel.path == key))

    @staticmethod
    def _tasks_for(session: Session, file_id: int) -> list[Task]:
        stmt = (
            select(TrackedTaskModel)
            .where(TrackedTaskModel.file_id == file_id)
            .order_by(TrackedTaskModel.position.asc())
        )
        return [_to_entity(model) for model in session.scalars(stmt)]
