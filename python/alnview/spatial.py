"""Bulk-loaded R-tree over segment bounding boxes.

The tree is packed with Sort-Tile-Recursive (STR) ordering: boxes are
sorted into vertical slices by x centre, each slice is sorted by y
centre, and consecutive runs of ``node_capacity`` boxes become leaves.
Upper levels group consecutive nodes the same way, so every level is a
flat set of numpy arrays and a query descends the tree one vectorised
level at a time.

Nothing is mutable after construction, so any number of threads may query
the same index.
"""

from __future__ import annotations

import logging
import math

import numpy as np

_log = logging.getLogger(__name__)

DEFAULT_NODE_CAPACITY = 16

_EMPTY = np.empty(0, dtype=np.int64)
_EMPTY.setflags(write=False)


def _frozen(arr: np.ndarray) -> np.ndarray:
    arr = np.ascontiguousarray(arr)
    arr.setflags(write=False)
    return arr


class SpatialIndex:
    """Packed R-tree answering rectangle-overlap queries.

    Parameters
    ----------
    xmin, xmax, ymin, ymax : array-like
        Bounding box of every item.  Item ``i`` is reported by
        :meth:`query` as integer ``i``.
    node_capacity : int, optional
        Maximum children per node.  Default is
        :data:`DEFAULT_NODE_CAPACITY`.

    Raises
    ------
    ValueError
        If the box arrays differ in length or *node_capacity* < 2.

    Examples
    --------
    >>> idx = SpatialIndex([0, 50], [10, 60], [0, 50], [10, 60])
    >>> idx.query(5, 5, 10, 10).tolist()
    [0]
    """

    def __init__(
        self,
        xmin,
        xmax,
        ymin,
        ymax,
        node_capacity: int = DEFAULT_NODE_CAPACITY,
    ) -> None:
        if node_capacity < 2:
            raise ValueError(f'node_capacity must be >= 2, got {node_capacity}')
        x0 = np.asarray(xmin, dtype=np.int64)
        x1 = np.asarray(xmax, dtype=np.int64)
        y0 = np.asarray(ymin, dtype=np.int64)
        y1 = np.asarray(ymax, dtype=np.int64)
        n = len(x0)
        if not (len(x1) == len(y0) == len(y1) == n):
            raise ValueError('Bounding-box arrays must all have the same length')

        self.node_capacity = node_capacity
        self._n = n
        # levels[0] holds the items themselves, levels[-1] the root node(s).
        self._levels: list[tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]] = []
        if n == 0:
            self._ids = _EMPTY
            return

        order = self._str_order(x0, x1, y0, y1, node_capacity)
        self._ids = _frozen(order)
        level = (x0[order], x1[order], y0[order], y1[order])
        self._levels.append(tuple(_frozen(a) for a in level))
        while len(level[0]) > node_capacity:
            starts = np.arange(0, len(level[0]), node_capacity)
            level = (
                np.minimum.reduceat(level[0], starts),
                np.maximum.reduceat(level[1], starts),
                np.minimum.reduceat(level[2], starts),
                np.maximum.reduceat(level[3], starts),
            )
            self._levels.append(tuple(_frozen(a) for a in level))
        _log.debug(
            'Built spatial index: %d items, %d levels, capacity %d',
            n,
            len(self._levels),
            node_capacity,
        )

    @classmethod
    def from_segments(
        cls,
        abeg,
        aend,
        bbeg,
        bend,
        node_capacity: int = DEFAULT_NODE_CAPACITY,
    ) -> 'SpatialIndex':
        """Index segments given as coordinate columns.

        Segment endpoints may run in either direction on each axis; the
        bounding box is taken from their min/max.
        """
        abeg = np.asarray(abeg, dtype=np.int64)
        aend = np.asarray(aend, dtype=np.int64)
        bbeg = np.asarray(bbeg, dtype=np.int64)
        bend = np.asarray(bend, dtype=np.int64)
        return cls(
            np.minimum(abeg, aend),
            np.maximum(abeg, aend),
            np.minimum(bbeg, bend),
            np.maximum(bbeg, bend),
            node_capacity=node_capacity,
        )

    @staticmethod
    def _str_order(x0, x1, y0, y1, capacity: int) -> np.ndarray:
        n = len(x0)
        cx = (x0 + x1) / 2.0
        cy = (y0 + y1) / 2.0
        n_leaves = math.ceil(n / capacity)
        n_slices = math.ceil(math.sqrt(n_leaves))
        slice_size = n_slices * capacity
        by_x = np.argsort(cx, kind='stable')
        slice_id = np.empty(n, dtype=np.int64)
        slice_id[by_x] = np.arange(n) // slice_size
        # Primary key: slice; secondary: y centre; ties broken by x centre.
        return np.lexsort((cx, cy, slice_id)).astype(np.int64)

    def __len__(self) -> int:
        return self._n

    def __repr__(self) -> str:
        return (
            f'SpatialIndex(items={self._n}, levels={len(self._levels)}, '
            f'capacity={self.node_capacity})'
        )

    @property
    def depth(self) -> int:
        """Number of levels, counting the item level."""
        return len(self._levels)

    @property
    def bounds(self) -> tuple[int, int, int, int] | None:
        """Return ``(xmin, xmax, ymin, ymax)`` over all items, or ``None`` if empty."""
        if not self._levels:
            return None
        x0, x1, y0, y1 = self._levels[-1]
        return int(x0.min()), int(x1.max()), int(y0.min()), int(y1.max())

    def query(self, x: float, y: float, width: float, height: float) -> np.ndarray:
        """Return the items whose bounding box overlaps a rectangle.

        The rectangle is ``[x, x + width] x [y, y + height]``, closed on all
        sides.  Only bounding boxes are tested.

        Parameters
        ----------
        x, y : float
            Lower-left corner.
        width, height : float
            Extent; zero, negative or non-finite values give an empty result.

        Returns
        -------
        numpy.ndarray
            Sorted ``int64`` item numbers.
        """
        if not self._levels:
            return _EMPTY
        if not all(math.isfinite(v) for v in (x, y, width, height)):
            return _EMPTY
        if width <= 0 or height <= 0:
            return _EMPTY
        qx1 = x + width
        qy1 = y + height
        cap = self.node_capacity
        child_slots = np.arange(cap, dtype=np.int64)

        cand = np.arange(len(self._levels[-1][0]), dtype=np.int64)
        for depth in range(len(self._levels) - 1, -1, -1):
            bx0, bx1, by0, by1 = self._levels[depth]
            hit = (bx1[cand] >= x) & (bx0[cand] <= qx1) & (by1[cand] >= y) & (by0[cand] <= qy1)
            cand = cand[hit]
            if cand.size == 0:
                return _EMPTY
            if depth == 0:
                break
            n_below = len(self._levels[depth - 1][0])
            children = (cand[:, None] * cap + child_slots[None, :]).ravel()
            cand = children[children < n_below]
        return np.sort(self._ids[cand])
