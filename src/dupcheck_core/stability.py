from __future__ import annotations

from typing import TypeVar

T = TypeVar("T")


def stable_api(obj: T) -> T:
    """Mark a public dupcheck object as stable for tooling and the API docs."""
    try:
        obj.__stability__ = "stable"
    except (AttributeError, TypeError):
        # builtins and some C types reject new attributes
        pass
    return obj
