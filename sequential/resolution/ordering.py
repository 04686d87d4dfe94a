"""Finder-style ordering: folders first, then natural name order."""
from __future__ import annotations

import functools
import re
import unicodedata
from pathlib import PurePath
from typing import Iterable, TypeVar, Union

P = TypeVar("P", bound=PurePath)

_DIGITS = re.compile(r"(\d+)")


def natural_key(component: str) -> tuple[tuple[int, int | str], ...]:
    """Case-insensitive key where digit runs compare by value ("2" < "10")."""
    text = unicodedata.normalize("NFKC", component).casefold()
    key: list[tuple[int, int | str]] = []
    for index, chunk in enumerate(_DIGITS.split(text)):
        if not chunk:
            continue
        if index % 2:
            key.append((0, int(chunk)))
        else:
            key.append((1, chunk))
    return tuple(key)


def compare_components(a: str, b: str) -> int:
    ka, kb = natural_key(a), natural_key(b)
    if ka != kb:
        return -1 if ka < kb else 1
    # "01" vs "1", "A" vs "a": fall back to the raw text so the order stays total.
    if a != b:
        return -1 if a < b else 1
    return 0


def compare_paths(a: Union[str, PurePath], b: Union[str, PurePath]) -> int:
    """Negative when ``a`` sorts before ``b``, positive when after.

    At the first diverging component, an entry that continues below it (a
    folder) sorts before one that ends there (a file). Otherwise the diverging
    names are compared naturally.
    """
    ap = PurePath(a).parts
    bp = PurePath(b).parts
    index = next((i for i, (ac, bc) in enumerate(zip(ap, bp)) if ac != bc), None)
    if index is None:
        # One path is a prefix of the other (or they are identical).
        return (len(ap) > len(bp)) - (len(ap) < len(bp))

    count = index + 1
    if len(ap) > count and len(bp) == count:
        return -1
    if len(ap) == count and len(bp) > count:
        return 1
    return compare_components(ap[index], bp[index])


def finder_sort(paths: Iterable[P]) -> list[P]:
    return sorted(paths, key=functools.cmp_to_key(compare_paths))
