"""Dense integer ordering helpers shared by the server services and the client store.

Every ordered scope (columns of a project, items of a column) keeps ``order``
values ``0..n-1``; each reorder renumbers the whole scope.
"""
from typing import List, Sequence, TypeVar

T = TypeVar("T")


def clamp_index(index: int, length: int) -> int:
    """Clamp an insertion index into ``[0, length]``"""
    return max(0, min(index, length))


def array_move(sequence: Sequence[T], old_index: int, new_index: int) -> List[T]:
    """Return a copy of ``sequence`` with one element moved from ``old_index`` to ``new_index``"""
    result = list(sequence)
    if not result:
        return result
    element = result.pop(old_index)
    result.insert(clamp_index(new_index, len(result)), element)
    return result


def insert_at(sequence: Sequence[T], element: T, index: int) -> List[T]:
    """Return a copy of ``sequence`` with ``element`` inserted at the clamped ``index``"""
    result = list(sequence)
    result.insert(clamp_index(index, len(result)), element)
    return result


def renumber(sequence: Sequence[T], attribute: str = "order") -> List[T]:
    """Assign ``0..n-1`` to ``attribute`` of each element in place.

    Returns the elements whose value actually changed.
    """
    changed = []
    for new_order, element in enumerate(sequence):
        if getattr(element, attribute) != new_order:
            setattr(element, attribute, new_order)
            changed.append(element)
    return changed
