from __future__ import annotations

from alembic import command
from sqlalchemy import inspect, text

from trello_sync.domain.codec import serialize
from trello_sync.domain.entities import Task
from trello_sync.domain.enums import SyncState
from trello_sync.infra.db import create_db_engine, migration_config
from trello_sync.infra.repository import file_key


def _task(title: str, items: list[str]) -> Task:
    return Task(title=title, checklist=items, comment=serialize(title, items))


def test_replace_and_load_preserve_order_and_state(store, tmp_path) -> None:
    path = tmp_path / "order.ts"
    tasks = [
        _task("First", ["a", "b"]).linked("card1", "checklist1"),
        _task("Second", ["c"]),
        _task("Third", ["d"]).linked("card3", "checklist3").deprecate(),
        _task("Fourth", ["e"]).linked("card4"),
    ]

    store.replace(path, tasks)

    assert store.load(path) == tasks


def test_replace_overwrites_previous_tasks(store, tmp_path) -> None:
    path = tmp_path / "order.ts"
    store.replace(path, [_task("Old", ["a"]).linked("card1", "checklist1")])

    store.replace(path, [_task("New", ["b"])])

    assert [task.title for task in store.load(path)] == ["New"]


def test_unknown_file_loads_empty(store, tmp_path) -> None:
    assert store.load(tmp_path / "missing.ts") == []


def test_paths_are_normalized_to_absolute(store, tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    store.replace("order.ts", [_task("T", ["a"])])

    assert store.files() == [file_key(tmp_path / "order.ts")]
    assert len(store.load(tmp_path / "order.ts")) == 1


def test_load_all_and_forget(store, tmp_path) -> None:
    first = tmp_path / "a.ts"
    second = tmp_path / "b.ts"
    store.replace(first, [_task("A", ["x"])])
    store.replace(second, [_task("B", ["y"]), _task("C", ["z"])])

    everything = store.load_all()
    assert list(everything) == [str(first), str(second)]
    assert [task.title for task in everything[str(second)]] == ["B", "C"]

    store.forget(first)
    assert store.files() == [str(second)]


def test_migrations_create_and_drop_schema(database_url) -> None:
    engine = create_db_engine(database_url)
    config = migration_config()
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        command.upgrade(config, "head")
        tables = set(inspect(connection).get_table_names())
        columns = {column["name"] for column in inspect(connection).get_columns("tracked_tasks")}
        command.downgrade(config, "base")
        remaining = set(inspect(connection).get_table_names())
    engine.dispose()

    assert {"source_files", "tracked_tasks"} <= tables
    assert {"state", "card_id", "checklist_id", "comment"} <= columns
    assert "tracked_tasks" not in remaining
    assert "source_files" not in remaining


def test_state_defaults_to_unsynced_for_raw_rows(store, database_url, tmp_path) -> None:
    path = file_key(tmp_path / "order.ts")
    store.replace(path, [])
    engine = create_db_engine(database_url)
    with engine.begin() as connection:
        connection.execute(
            text(
                "INSERT INTO tracked_tasks (file_id, position, title, checklist, comment, updated_at)"
                " SELECT id, 0, 'Raw', '[\"a\"]', 'c1', CURRENT_TIMESTAMP FROM source_files"
            )
        )
    engine.dispose()

    tasks = store.load(path)

    assert [(task.title, task.state, task.checklist) for task in tasks] == [
        ("Raw", SyncState.UNSYNCED, ("a",))
    ]
