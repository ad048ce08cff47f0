"""
Accumulates discovered identifiers into named destination groups.
"""

from typing import Iterable

from .identifier import ItemIdentifier


class GroupingStore:
    """
    Maps a group key to an ordered set of identifiers.

    Filled line by line during ingestion and drained once when processing
    starts. Overlapping collections that resolve to the same key merge, and
    set semantics absorb the duplicates.
    """

    def __init__(self):
        self._groups: dict[str, dict[ItemIdentifier, None]] = {}

    def ingest(self, key: str, members: Iterable[ItemIdentifier]) -> int:
        """
        Merges members into the group stored under `key`.

        Returns:
            The number of members that were not already in the group.
        """
        group = self._groups.setdefault(key, {})
        before = len(group)
        group.update(dict.fromkeys(members))
        return len(group) - before

    def drain(self) -> dict[str, list[ItemIdentifier]]:
        """Empties the store and returns what it held, in insertion order."""
        groups, self._groups = self._groups, {}
        return {key: list(members) for key, members in groups.items()}

    def total_items(self) -> int:
        return sum(len(members) for members in self._groups.values())

    def __len__(self) -> int:
        return len(self._groups)

    def __bool__(self) -> bool:
        return bool(self._groups)
