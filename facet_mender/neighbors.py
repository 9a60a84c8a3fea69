"""Provides the neighbor links and the per-facet neighbor table."""

from collections.abc import Iterator
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

# Slot permutation applied when a facet swaps its first two vertices. The new slot
# ``j`` holds the old slot ``REVERSED_SLOTS[j]``.
REVERSED_SLOTS = (0, 2, 1)
# Vertex index permutation for the same swap.
REVERSED_VERTICES = (1, 0, 2)


@dataclass(frozen=True, slots=True)
class NoNeighbor:
    """An edge without a matched neighbor."""


@dataclass(frozen=True, slots=True)
class Forward:
    """A neighbor running the shared edge in reverse, i.e. consistently wound.

    Attributes
    ----------
    facet : int
        The index of the neighbor facet.
    vertex_not : int
        The index of the neighbor's vertex that is not on the shared edge. The
        neighbor's shared edge is its slot ``(vertex_not + 1) % 3``.
    """

    facet: int
    vertex_not: int


@dataclass(frozen=True, slots=True)
class Backward:
    """A neighbor running the shared edge in the same direction (a backwards edge).

    Attributes
    ----------
    facet : int
        The index of the neighbor facet.
    vertex_not : int
        The index of the neighbor's vertex that is not on the shared edge.
    """

    facet: int
    vertex_not: int


NeighborLink = NoNeighbor | Forward | Backward

NO_NEIGHBOR = NoNeighbor()


def shared_slot(vertex_not: int) -> int:
    """Get the neighbor's edge slot from the index of its vertex not on the edge."""
    return (vertex_not + 1) % 3


def _flipped(link: NeighborLink) -> NeighborLink:
    match link:
        case Forward(facet, vertex_not):
            return Backward(facet, vertex_not)
        case Backward(facet, vertex_not):
            return Forward(facet, vertex_not)
        case _:
            return link


def _renumbered(link: NeighborLink) -> NeighborLink:
    # The far facet swapped its first two vertices
    match link:
        case Forward(facet, vertex_not):
            return Forward(facet, REVERSED_VERTICES[vertex_not])
        case Backward(facet, vertex_not):
            return Backward(facet, REVERSED_VERTICES[vertex_not])
        case _:
            return link


class NeighborTable:
    """Three neighbor slots per facet, one per directed edge.

    Slot ``j`` of a facet belongs to its edge ``(v[j], v[(j + 1) % 3])``. Links are
    always written in pairs so the table stays symmetric.
    """

    def __init__(self, facet_count: int = 0) -> None:
        self._slots: list[list[NeighborLink]] = [
            [NO_NEIGHBOR, NO_NEIGHBOR, NO_NEIGHBOR] for _ in range(facet_count)
        ]

    def __len__(self) -> int:
        return len(self._slots)

    def __getitem__(self, facet: int) -> tuple[NeighborLink, ...]:
        return tuple(self._slots[facet])

    def get(self, facet: int, slot: int) -> NeighborLink:
        """Get the link stored in one slot."""
        return self._slots[facet][slot]

    def set(self, facet: int, slot: int, link: NeighborLink) -> None:
        """Overwrite one slot without touching the reciprocal slot.

        This bypasses the symmetry guarantee and is meant for diagnostics and tests.
        """
        self._slots[facet][slot] = link

    def link(
        self,
        facet_a: int,
        slot_a: int,
        facet_b: int,
        slot_b: int,
        *,
        backwards: bool,
    ) -> None:
        """Link two edge slots to each other.

        Parameters
        ----------
        facet_a : int
            The index of the first facet.
        slot_a : int
            The edge slot of the first facet.
        facet_b : int
            The index of the second facet.
        slot_b : int
            The edge slot of the second facet.
        backwards : bool
            Whether both facets run the shared edge in the same direction.

        Raises
        ------
        ValueError
            If both slots belong to the same facet.
        """
        if facet_a == facet_b:
            msg = f"Facet {facet_a} cannot be its own neighbor"
            raise ValueError(msg)
        link_type = Backward if backwards else Forward
        self._slots[facet_a][slot_a] = link_type(facet_b, (slot_b + 2) % 3)
        self._slots[facet_b][slot_b] = link_type(facet_a, (slot_a + 2) % 3)

    def links(self) -> Iterator[tuple[int, int, NeighborLink]]:
        """Iterate over every slot as ``(facet, slot, link)``."""
        for facet, slots in enumerate(self._slots):
            for slot, link in enumerate(slots):
                yield facet, slot, link

    def degrees(self) -> NDArray[np.int64]:
        """Get the number of matched edges of every facet."""
        return np.array(
            [
                sum(not isinstance(link, NoNeighbor) for link in slots)
                for slots in self._slots
            ],
            dtype=np.int64,
        )

    def unmatched(self) -> list[tuple[int, int]]:
        """Get every ``(facet, slot)`` without a neighbor."""
        return [
            (facet, slot)
            for facet, slot, link in self.links()
            if isinstance(link, NoNeighbor)
        ]

    def backwards_count(self) -> int:
        """Count backwards edges, one per linked pair."""
        return sum(
            isinstance(link, Backward) and facet < link.facet
            for facet, _, link in self.links()
        )

    def append(self, count: int) -> None:
        """Add empty slots for ``count`` new facets."""
        self._slots.extend(
            [NO_NEIGHBOR, NO_NEIGHBOR, NO_NEIGHBOR] for _ in range(count)
        )

    def compact(self, keep: NDArray[np.bool_]) -> None:
        """Drop facets and renumber the remaining links.

        Parameters
        ----------
        keep : NDArray[np.bool_]
            A mask of the facets to keep. Links to dropped facets are cleared.
        """
        new_index = np.cumsum(keep) - 1
        slots = []
        for facet in np.flatnonzero(keep):
            renumbered: list[NeighborLink] = []
            for link in self._slots[facet]:
                if isinstance(link, Forward | Backward) and keep[link.facet]:
                    index = int(new_index[link.facet])
                    renumbered.append(type(link)(index, link.vertex_not))
                else:
                    renumbered.append(NO_NEIGHBOR)
            slots.append(renumbered)
        self._slots = slots

    def reverse(self, facet: int) -> None:
        """Update the table after ``facet`` swapped its first two vertices.

        The facet's slots are permuted to follow its edges, every link touching the
        facet flips between forward and backward, and the reciprocal links learn the
        new index of the facet's vertex not on the shared edge.
        """
        old = self._slots[facet]
        self._slots[facet] = [_flipped(old[REVERSED_SLOTS[slot]]) for slot in range(3)]
        for link in self._slots[facet]:
            match link:
                case Forward(neighbor, vertex_not) | Backward(neighbor, vertex_not):
                    slot = shared_slot(vertex_not)
                    back = self._slots[neighbor][slot]
                    if isinstance(back, NoNeighbor) or back.facet != facet:
                        continue
                    self._slots[neighbor][slot] = _flipped(_renumbered(back))

    def reverse_all(self) -> None:
        """Update the table after every facet swapped its first two vertices.

        Both ends of every link are reversed, so forward and backward tags stay.
        """
        self._slots = [
            [_renumbered(slots[REVERSED_SLOTS[slot]]) for slot in range(3)]
            for slots in self._slots
        ]
