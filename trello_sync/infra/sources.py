from __future__ import annotations

from pathlib import Path


def read_source(path: str | Path) -> str:
    """Read a source file with its line endings untouched."""
    with open(path, "r", newline="", encoding="utf-8") as handle:
        return handle.read()


def write_source(path: str | Path, text: str) -> None:
    with open(path, "w", newline="", encoding="utf-8") as handle:
        handle.write(text)


def line_ending(text: str) -> str:
    return "\r\n" if "\r\n" in text else "\n"
