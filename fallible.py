# Filename: fallible.py

import logging
from typing import Any, Awaitable, Callable, Dict, Hashable, List, Sequence, TypeVar

logger = logging.getLogger("fallible")

T = TypeVar("T")
B = TypeVar("B")
E = TypeVar("E")


class MergeError(RuntimeError):
    """A base record has no matching enrichment result."""


async def ok_to_fail(func: Callable[..., Awaitable[T]], *args: Any, default: Any = None) -> Any:
    """
    Awaits func(*args) and returns ``default`` instead of raising.

    Used around every per-record lookup so that one unreadable account or
    unreachable URI only degrades that field.
    """
    try:
        return await func(*args)
    except Exception as e:
        name = getattr(func, "__name__", repr(func))
        logger.debug(f"[OK TO FAIL] {name}{tuple(str(a) for a in args)} failed: {type(e).__name__}: {e}")
        return default


def join_on_key(
    base: Sequence[B],
    enrichments: Sequence[E],
    key: Callable[[Any], Hashable],
    merge: Callable[[B, E], T],
) -> List[T]:
    """
    Merges each base item with the enrichment that shares its key.

    The output follows the order of ``base`` one for one. Base and enrichment
    keys must match exactly: a missing, duplicated or leftover key raises
    MergeError.
    """
    by_key: Dict[Hashable, E] = {}
    for item in enrichments:
        k = key(item)
        if k in by_key:
            raise MergeError(f"duplicate enrichment result for key {k}")
        by_key[k] = item

    merged = []
    for item in base:
        k = key(item)
        if k not in by_key:
            raise MergeError(f"no enrichment result for key {k}")
        merged.append(merge(item, by_key.pop(k)))

    if by_key:
        leftover = ", ".join(str(k) for k in by_key)
        raise MergeError(f"enrichment results without a base record: {leftover}")
    return merged
