from __future__ import annotations

import pytest
from click.testing import CliRunner

from trello_sync.domain.codec import serialize
from trello_sync.main import cli

LIST_ID = "list-todo"
ORDER_BLOCK = serialize("Validate order total", ["Check A", "Check B"])


@pytest.fixture
def env(tmp_path, database_url) -> dict[str, str]:
    return {
        "TRELLO_API_KEY": "key",
        "TRELLO_API_TOKEN": "token",
        "TRELLO_LIST_ID": LIST_ID,
        "TRELLO_RED_LABEL_ID": "",
        "DATABASE_URL": database_url,
        "LOG_DIR": str(tmp_path / "logs"),
        "WATCH_EXTENSIONS": ".ts",
    }


@pytest.fixture
def source(tmp_path):
    path = tmp_path / "order.ts"
    path.write_text(f"// order\n{ORDER_BLOCK}\n", encoding="utf-8")
    return path


def test_save_creates_cards_and_status_lists_them(board, store, env, source) -> None:
    runner = CliRunner()

    result = runner.invoke(cli, ["save", str(source)], obj={"board": board, "store": store}, env=env)

    assert result.exit_code == 0, result.output
    assert "Trello card created: Validate order total" in result.output
    assert "1 created" in result.output

    status = runner.invoke(cli, ["status"], obj={"board": board, "store": store}, env=env)
    assert "[synced] Validate order total (2 items)" in status.output


def test_save_skips_unwatched_suffix_unless_forced(board, store, env, tmp_path) -> None:
    notes = tmp_path / "notes.md"
    notes.write_text(ORDER_BLOCK, encoding="utf-8")
    runner = CliRunner()
    obj = {"board": board, "store": store}

    skipped = runner.invoke(cli, ["save", str(notes)], obj=obj, env=env)
    assert "Skipping" in skipped.output
    assert board.calls == []

    forced = runner.invoke(cli, ["save", "--force", str(notes)], obj=obj, env=env)
    assert forced.exit_code == 0, forced.output
    assert "1 created" in forced.output


def test_missing_credentials_exit_with_code_2(board, store, env, source) -> None:
    env = {**env, "TRELLO_API_TOKEN": "", "TRELLO_LIST_ID": ""}

    result = CliRunner().invoke(
        cli, ["save", str(source)], obj={"board": board, "store": store}, env=env
    )

    assert result.exit_code == 2
    assert "TRELLO_API_TOKEN" in result.output
    assert board.calls == []


def test_sync_pulls_remote_items(board, store, env, source) -> None:
    runner = CliRunner()
    obj = {"board": board, "store": store}
    runner.invoke(cli, ["save", str(source)], obj=obj, env=env)
    board.set_items(store.load(source)[0].checklist_id, ["Check A", "Check B", "Check C"])

    result = runner.invoke(cli, ["sync"], obj=obj, env=env)

    assert result.exit_code == 0, result.output
    assert "1 rewritten, 0 deprecated, 0 failed" in result.output
    assert serialize("Validate order total", ["Check A", "Check B", "Check C"]) in source.read_text(
        encoding="utf-8"
    )


def test_snippet_prints_block(env) -> None:
    result = CliRunner().invoke(
        cli,
        ["snippet", "--title", "Validate order total", "--items", "Check A, Check B"],
        env=env,
    )

    assert result.exit_code == 0, result.output
    assert result.output == ORDER_BLOCK + "\n"


def test_snippet_prompts_and_inserts_final_block(env, tmp_path) -> None:
    target = tmp_path / "cart.ts"
    target.write_text("line one\nline two\n", encoding="utf-8")

    result = CliRunner().invoke(
        cli,
        ["snippet", "--final", "--insert", str(target), "--line", "2"],
        input="Ship it\nTag release,Publish notes\n",
        env=env,
    )

    assert result.exit_code == 0, result.output
    assert "Trello task snippet inserted: Ship it" in result.output
    assert target.read_text(encoding="utf-8") == (
        "line one\n"
        + serialize("Ship it", ["Tag release", "Publish notes"], final=True)
        + "\nline two\n"
    )


def test_snippet_rejects_comma_in_title(env) -> None:
    result = CliRunner().invoke(
        cli, ["snippet", "--title", "a, b", "--items", "x"], env=env
    )

    assert result.exit_code == 2


def test_save_continues_past_undecodable_file(board, store, env, source, tmp_path) -> None:
    broken = tmp_path / "broken.ts"
    broken.write_bytes(b"// caf\xe9\n")

    result = CliRunner().invoke(
        cli, ["save", str(broken), str(source)], obj={"board": board, "store": store}, env=env
    )

    assert result.exit_code == 1
    assert "1 created" in result.output
    assert store.load(source)[0].card_id


def test_snippet_insert_keeps_crlf_line_endings(env, tmp_path) -> None:
    target = tmp_path / "cart.ts"
    target.write_bytes(b"line one\r\nline two\r\n")

    result = CliRunner().invoke(
        cli,
        ["snippet", "--title", "Ship it", "--items", "Tag release", "--insert", str(target)],
        env=env,
    )

    assert result.exit_code == 0, result.output
    block = serialize("Ship it", ["Tag release"], newline="\r\n")
    assert target.read_bytes() == f"line one\r\nline two\r\n{block}\r\n".encode()
