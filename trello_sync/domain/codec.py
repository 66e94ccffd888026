from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from .entities import ParsedBlock, Task
from .enums import ChecklistPolicy
from .errors import ParseMismatch

BLOCK_PATTERN = re.compile(
    r"/\*\s*\[RED\]\s*(?P<final>\[FINAL\]\s*)?trello task (?P<title>[^,]+),"
    r"\s*checklist items\s*(?P<body>.*?)\s*\*/",
    re.DOTALL,
)
NUMBERED_LINE = re.compile(r"^\d+\.")
NUMBER_DELIMITER = re.compile(r"(?:^|(?<=\s))\d+\.")

FINAL_TAG = "[FINAL] "
COMMENT_END = "*/"


def clean_item(name: str) -> str:
    """Flatten an item onto one line and break up anything that would close the comment."""
    return " ".join(name.split()).replace(COMMENT_END, "* /")


def serialize(title: str, items: Iterable[str], final: bool = False, newline: str = "\n") -> str:
    cleaned = [item for item in map(clean_item, items) if item]
    lines = newline.join(f"{index}.{item}" for index, item in enumerate(cleaned, start=1))
    tag = FINAL_TAG if final else ""
    return f"/* [RED] {tag}trello task {title.strip()}, checklist items{newline}{lines}{newline}*/"


def split_items(raw: str) -> list[str]:
    """Split a comma-separated snippet answer into checklist items."""
    return [item.strip() for item in raw.split(",") if item.strip()]


class CommentCodec:
    def __init__(self, policy: ChecklistPolicy = ChecklistPolicy.STRICT) -> None:
        self.policy = ChecklistPolicy(policy)

    def parse(self, text: str) -> list[ParsedBlock]:
        blocks = []
        for match in BLOCK_PATTERN.finditer(text):
            blocks.append(
                ParsedBlock(
                    title=match.group("title").strip(),
                    checklist=tuple(self._items(match.group("body"))),
                    comment=match.group(0),
                    start=match.start(),
                    end=match.end(),
                    final=bool(match.group("final")),
                )
            )
        return blocks

    def active_tasks(self, text: str) -> list[Task]:
        return [block.to_task() for block in self.parse(text) if not block.final]

    def _items(self, body: str) -> list[str]:
        body = body.strip()
        if self.policy == ChecklistPolicy.LOOSE:
            pieces = NUMBER_DELIMITER.split(body)[1:]
        else:
            pieces = [
                NUMBERED_LINE.sub("", line.strip())
                for line in body.split("\n")
                if NUMBERED_LINE.match(line.strip())
            ]
        return [piece.strip() for piece in pieces if piece.strip()]


def locate(blocks: Sequence[ParsedBlock], comment: str, taken: set[int]) -> ParsedBlock:
    """Return the first block not in ``taken`` whose text equals ``comment``.

    The chosen block's start offset is added to ``taken`` so identical
    blocks are paired with stored tasks in document order.
    """
    for block in blocks:
        if block.final or block.start in taken:
            continue
        if block.comment == comment:
            taken.add(block.start)
            return block
    raise ParseMismatch(f"Comment not found in source text: {comment[:60]!r}")


def replace_spans(text: str, replacements: Sequence[tuple[ParsedBlock, str]]) -> str:
    result = text
    for block, new_comment in sorted(replacements, key=lambda pair: pair[0].start, reverse=True):
        result = result[: block.start] + new_comment + result[block.end :]
    return result
