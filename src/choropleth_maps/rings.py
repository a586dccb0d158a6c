"""Ring detection for concatenated polygon point sequences.

Shapefile polygons store every part of a multipart shape in one point list.
A ring ends where its opening vertex recurs, so the sequence can be cut into
independently drawable rings without consulting the part index.
"""

from __future__ import annotations

from typing import Sequence

Point = Sequence[float]


def _same(a: Point, b: Point) -> bool:
    return a[0] == b[0] and a[1] == b[1]


def find_ring_boundaries(polygon: Sequence[Point]) -> list[tuple[int, int]]:
    """Return ``(start, end)`` index pairs, 1-based and inclusive, one per ring.

    A ring that never closes is closed at the last point. Polygons with fewer
    than two points yield no rings.
    """
    last = len(polygon) - 1
    boundaries: list[tuple[int, int]] = []
    idx = 0
    while idx < last:
        start = idx
        opener = polygon[idx]
        idx += 1
        while not _same(polygon[idx], opener) and idx != last:
            idx += 1
        boundaries.append((start + 1, idx + 1))
        idx += 1
    return boundaries


def split_rings(polygon: Sequence[Point]) -> list[list[Point]]:
    """Cut ``polygon`` into its rings, in scan order."""
    return [list(polygon[start - 1 : end]) for start, end in find_ring_boundaries(polygon)]
