"""Position arithmetic shared by reordering and creation commits."""

from __future__ import annotations

from typing import Optional, Sequence

from todohub.sync.contracts import Todo


def actual_destination(source: int, destination: int) -> int:
    """Final index of a moved item given insertion-before move semantics.

    Moving down, the item is lifted before reinsertion and the list shrinks
    by one, so the landing index is ``destination - 1``.
    """
    return destination - 1 if destination > source else destination


def resolve_anchor(incomplete: Sequence[Todo], index: int) -> Optional[str]:
    """Project item id the todo at ``index`` should be placed after.

    Scans backward from ``index - 1`` skipping pending todos and todos that
    were never attached to the project. Returns None for index 0 or when no
    qualifying predecessor exists, meaning "move to top".
    """
    if index <= 0:
        return None
    before = min(index, len(incomplete)) - 1
    while before >= 0:
        candidate = incomplete[before]
        if not candidate.is_pending and candidate.project_item_id is not None:
            return candidate.project_item_id
        before -= 1
    return None
