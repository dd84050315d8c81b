"""Identity set tracking elements already rendered by a specialized rule."""

from typing import Dict

from bs4 import Tag


class ProcessedSet:
    """
    Per-conversion set of element identities.

    Elements are keyed by ``id()`` and the element itself is held so the key
    cannot be recycled while the set is alive. A set belongs to exactly one
    conversion call and is discarded when that call returns.
    """

    def __init__(self):
        self._elements: Dict[int, Tag] = {}

    def __contains__(self, element) -> bool:
        return id(element) in self._elements

    def __len__(self) -> int:
        return len(self._elements)

    def add(self, element: Tag) -> bool:
        """
        Mark an element as processed.

        Returns:
            True if the element was newly added, False if it was already present
        """
        key = id(element)
        if key in self._elements:
            return False
        self._elements[key] = element
        return True

    def add_subtree(self, element: Tag) -> None:
        """Mark an element and every descendant tag as processed."""
        self.add(element)
        for descendant in element.find_all(True):
            self.add(descendant)
