"""Order preserving deduplication."""

from typing import Callable, Hashable, Iterable, List, Optional, TypeVar


T = TypeVar("T", bound=Hashable)


def filter_duplicates(
    values: Iterable[T],
    on_duplicate: Optional[Callable[[T], None]] = None,
) -> List[T]:
    """Return values with repeats removed, keeping first-occurrence order.

    ``on_duplicate`` is called with every repeated occurrence, in order,
    before it is dropped.
    """
    seen = set()
    result: List[T] = []
    for value in values:
        if value in seen:
            if on_duplicate:
                on_duplicate(value)
            continue
        seen.add(value)
        result.append(value)
    return result
