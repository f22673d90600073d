"""Identifier generation.

Ids are random rather than sequential so that two processes creating
tasks against the same log never hand out the same id.
"""

import secrets
from collections.abc import Container

TASK_ID_PREFIX = "pt-"
COMMENT_ID_PREFIX = "cm-"
ID_BYTES = 4


def _random_id(prefix: str, taken: Container[str]) -> str:
    while True:
        candidate = prefix + secrets.token_hex(ID_BYTES)
        if candidate not in taken:
            return candidate


def generate_task_id(taken: Container[str] = ()) -> str:
    """Return a new ``pt-xxxxxxxx`` id not present in ``taken``."""
    return _random_id(TASK_ID_PREFIX, taken)


def generate_comment_id(taken: Container[str] = ()) -> str:
    """Return a new ``cm-xxxxxxxx`` id not present in ``taken``."""
    return _random_id(COMMENT_ID_PREFIX, taken)
