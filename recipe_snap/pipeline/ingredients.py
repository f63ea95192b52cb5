"""Editable ingredient set for the Refine stage.

An ordered list of ingredient names, unique by trimmed lower-cased value.
The first-seen casing is kept for display. Mutation goes through add, remove
and replace only.
"""

from typing import Iterable, Iterator, Optional

# Source tag of a set typed in by hand, with no photo behind it
MANUAL_SOURCE = "manual"


def _key(name: str) -> str:
    return name.strip().lower()


class IngredientSet:
    """Ordered, case-insensitively unique ingredient names tied to one source.

    `source` is the identity of the image the set was extracted from,
    MANUAL_SOURCE for a hand-built set, or None when the set is not bound to
    any input yet.
    """

    def __init__(self, items: Iterable[str] = (), source: Optional[str] = None) -> None:
        self._items: list[str] = []
        self.source = source
        for item in items:
            self.add(item)

    def add(self, name: str) -> bool:
        """Append a name unless blank or already present.

        Returns:
            True if the name was added, False if it was blank or a duplicate.
        """
        cleaned = name.strip()
        if not cleaned or _key(cleaned) in self:
            return False
        self._items.append(cleaned)
        return True

    def remove(self, name: str) -> bool:
        """Remove the first entry matching `name` case-insensitively.

        Returns:
            True if an entry was removed, False if none matched.
        """
        key = _key(name)
        for idx, item in enumerate(self._items):
            if _key(item) == key:
                del self._items[idx]
                return True
        return False

    def replace(self, names: Iterable[str], source: Optional[str]) -> None:
        """Replace every entry and re-tag the set (fresh extraction results)."""
        self._items = []
        self.source = source
        for name in names:
            self.add(name)

    def copy(self) -> "IngredientSet":
        clone = IngredientSet(source=self.source)
        clone._items = list(self._items)
        return clone

    @property
    def items(self) -> tuple[str, ...]:
        return tuple(self._items)

    def snapshot_key(self) -> tuple[str, ...]:
        """Lower-cased entries in order; two sets with equal keys ask for the same ideas."""
        return tuple(_key(item) for item in self._items)

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        key = _key(name)
        return any(_key(item) == key for item in self._items)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IngredientSet):
            return NotImplemented
        return self._items == other._items and self.source == other.source

    def __repr__(self) -> str:
        return f"IngredientSet({self._items!r}, source={self.source!r})"
