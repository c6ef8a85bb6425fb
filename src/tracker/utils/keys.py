from __future__ import annotations

import hashlib
import secrets
import time
from typing import Iterable

from tracker.errors import InvalidKeyPartError

ID_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ-_"

def create_key(parts: Iterable[str], prefix: str, sep: str = ":") -> str:
    """
    Join prefix + parts with `sep`, e.g. create_key(["orders"], "history") -> "history:orders".
    Raises InvalidKeyPartError if any part (prefix included) is empty.
    """
    all_parts = [prefix, *parts]
    for p in all_parts:
        if not p:
            raise InvalidKeyPartError("empty key part not allowed")
    return sep.join(all_parts)

def nid(prefix: str = "", length: int = 16) -> str:
    """
    Short random id from ID_ALPHABET. The prefix is joined with "_" and does not
    count towards `length`. Falls back to the epoch in microseconds if the
    random source is unavailable.
    """
    try:
        out = "".join(secrets.choice(ID_ALPHABET) for _ in range(length))
    except (OSError, NotImplementedError):
        out = str(time.time_ns() // 1000)
    if prefix:
        out = f"{prefix}_{out}"
    return out

def hash_it(s: str) -> str:
    """Fixed-size digest (md5 hex, 32 chars). Collisions are treated as "seen"."""
    return hashlib.md5(s.encode("utf-8"), usedforsecurity=False).hexdigest()
