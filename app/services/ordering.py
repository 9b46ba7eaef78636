"""Position tags that keep uploads in the order the user picked them.

Multipart transfer does not promise that files arrive in selection order, and
per-image model calls finish in any order. Every file therefore travels with its
zero-based position encoded in its name (``"{index}__{name}"``); the receiver
recovers the position, re-sorts, and every fan-out stage hands results back
sorted by that position.
"""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Iterable, List, Sequence, Tuple, TypeVar

T = TypeVar("T")
R = TypeVar("R")

TAG_SEPARATOR = "__"


def tag_filename(index: int, name: str) -> str:
    return f"{index}{TAG_SEPARATOR}{name}"


def parse_position(tagged_name: str | None) -> int:
    """Recover the position from a tagged name; 0 when the tag is missing or malformed."""
    head = (tagged_name or "").split(TAG_SEPARATOR, 1)[0].strip()
    try:
        return int(head)
    except ValueError:
        return 0


def strip_tag(tagged_name: str | None) -> str:
    name = tagged_name or ""
    head, sep, rest = name.partition(TAG_SEPARATOR)
    if sep and head.strip().lstrip("-").isdigit():
        return rest
    return name


def restore_upload_order(items: Iterable[T], name_of: Callable[[T], str | None]) -> List[Tuple[int, T]]:
    """Pair each received item with its recovered position, sorted by position (stable)."""
    positioned = [(parse_position(name_of(item)), item) for item in items]
    positioned.sort(key=lambda pair: pair[0])
    return positioned


async def gather_in_position_order(
    items: Sequence[T],
    worker: Callable[[T, int], Awaitable[R]],
) -> List[R]:
    """Run ``worker(item, position)`` for every item concurrently; results come back in position order."""

    async def _tagged(position: int, item: T) -> Tuple[int, R]:
        return position, await worker(item, position)

    results = await asyncio.gather(*(_tagged(i, item) for i, item in enumerate(items)))
    return [res for _, res in sorted(results, key=lambda pair: pair[0])]
