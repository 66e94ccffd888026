from __future__ import annotations

import hashlib


def fingerprint(comment: str) -> str:
    return hashlib.sha256(comment.encode("utf-8")).hexdigest()
