"""Key/value pairs for ordering a mapping by its values."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class Pair:
    """One entry of a string-to-float mapping."""

    key: str
    value: float


def pair_list(mapping: Mapping[str, float]) -> list[Pair]:
    """Turn a mapping into a list of pairs, in the mapping's iteration order."""
    return [Pair(key, value) for key, value in mapping.items()]


def sort_by_value(pairs: Iterable[Pair]) -> list[Pair]:
    """Return the pairs in non-decreasing order of value; ties keep their order."""
    return sorted(pairs, key=lambda pair: pair.value)