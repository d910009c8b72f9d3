from __future__ import annotations

"""
scenariokit.core.utils
======================

Low-level helpers with **no external dependencies**:
- NanoID generator (URL-safe, crypto-strong) for run ids.
- Anonymous task ids for rows that carry no label.
- Label list normalization for reference and `after` fields.
"""

from collections.abc import Container, Iterable
from secrets import choice

from .types import DEFAULT_NANOID_ALPHABET, DEFAULT_NANOID_SIZE, CollectionName, TaskId


def nanoid(size: int = DEFAULT_NANOID_SIZE, alphabet: str = DEFAULT_NANOID_ALPHABET) -> str:
    """
    Generate a URL-safe NanoID (cryptographically strong).

    Args:
        size: number of characters.
        alphabet: allowed characters (default URL-safe).

    Returns:
        Random string of given size.
    """
    if size <= 0:
        raise ValueError("size must be positive")
    if not alphabet:
        raise ValueError("alphabet must be a non-empty string")
    return "".join(choice(alphabet) for _ in range(size))


def anonymous_task_id(collection: CollectionName, index: int, taken: Container[str] = ()) -> TaskId:
    """
    Task id for an unlabeled row: `users[3]` is the 4th row of `users`.

    Authors may use any string as a label, including one shaped like this, so
    ids found in `taken` get a `#n` suffix until they are free.
    """
    base = f"{collection}[{index}]"
    task_id, n = base, 1
    while task_id in taken:
        task_id, n = f"{base}#{n}", n + 1
    return task_id


def as_label_list(value: object) -> list[str]:
    """Normalize a label-or-labels value (`"a"`, `["a", "b"]`, None) to a list."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Iterable):
        return [v for v in value if v is not None]
    return [value]  # type: ignore[list-item]
