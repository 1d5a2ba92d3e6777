"""Snippet suggestions collected per undefined step location."""

from __future__ import annotations

import bisect
from collections.abc import Iterator, Sequence

from scenario_verdict.models import StepLocation


class PendingSnippets:
    """Mapping of :class:`StepLocation` to its snippet list.

    Iteration follows step location order (uri, then line), not insertion
    order. The first snippet list stored for a location wins; later
    suggestions for the same location are ignored, since a retried step
    suggests the same code again.
    """

    def __init__(self) -> None:
        self._snippets: dict[StepLocation, list[str]] = {}
        self._sorted_locations: list[StepLocation] = []

    def add(self, location: StepLocation, snippets: Sequence[str]) -> bool:
        """Store *snippets* for *location* unless one is already stored.

        Returns:
            ``True`` if the snippets were stored.
        """
        if location in self._snippets:
            return False
        self._snippets[location] = list(snippets)
        bisect.insort(self._sorted_locations, location)
        return True

    def pop(self, location: StepLocation) -> list[str] | None:
        """Remove and return the snippets for *location*, or ``None``."""
        snippets = self._snippets.pop(location, None)
        if snippets is not None:
            idx = bisect.bisect_left(self._sorted_locations, location)
            del self._sorted_locations[idx]
        return snippets

    def get(self, location: StepLocation) -> list[str] | None:
        return self._snippets.get(location)

    def locations(self) -> list[StepLocation]:
        return list(self._sorted_locations)

    def groups(self) -> list[list[str]]:
        """Return every stored snippet list in location order."""
        return [list(self._snippets[loc]) for loc in self._sorted_locations]

    def __contains__(self, location: object) -> bool:
        return location in self._snippets

    def __len__(self) -> int:
        return len(self._snippets)

    def __iter__(self) -> Iterator[StepLocation]:
        return iter(self.locations())
