"""
Identifier and key normalization for catalog entities.

Entity ids are slugs derived from human-typed names. Remote folder names are
matched case-insensitively through NormalizedKeyMap so the comparison and
import code share one definition of "the same name".
"""

import re
from typing import Dict, Generic, Iterator, List, Optional, Tuple, TypeVar

_WHITESPACE = re.compile(r"\s+")
_DISALLOWED = re.compile(r"[^a-z0-9-]")

V = TypeVar("V")


def slugify(name: str) -> str:
    """
    Derive an entity id from a name or product code.

    Lowercases, turns whitespace runs into a single hyphen and strips
    everything outside ``[a-z0-9-]``.

    Args:
        name: Human readable name, e.g. "Small Span"

    Returns:
        str: Slug, e.g. "small-span" (empty when nothing survives)
    """
    lowered = (name or "").lower()
    return _DISALLOWED.sub("", _WHITESPACE.sub("-", lowered))


def normalize_key(value: str) -> str:
    """Case-insensitive comparison key for names and folder paths."""
    return (value or "").strip().casefold()


class NormalizedKeyMap(Generic[V]):
    """
    Insertion-ordered map keyed by case-insensitive strings.

    The first value stored under a key wins: adding a case variant of an
    existing key is a no-op. The original spelling of each key is kept so
    callers can report the first-seen variant.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Tuple[str, V]] = {}

    def add(self, key: str, value: V) -> bool:
        """
        Store a value unless a case variant of the key is already present.

        Returns:
            bool: True when the key was new
        """
        normalized = normalize_key(key)
        if normalized in self._entries:
            return False
        self._entries[normalized] = (key, value)
        return True

    def get(self, key: str, default: Optional[V] = None) -> Optional[V]:
        entry = self._entries.get(normalize_key(key))
        return entry[1] if entry else default

    def original_key(self, key: str) -> Optional[str]:
        entry = self._entries.get(normalize_key(key))
        return entry[0] if entry else None

    def items(self) -> List[Tuple[str, V]]:
        """Return (first-seen key, value) pairs in insertion order."""
        return list(self._entries.values())

    def values(self) -> List[V]:
        return [value for _, value in self._entries.values()]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and normalize_key(key) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter([key for key, _ in self._entries.values()])
