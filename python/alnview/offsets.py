"""Cumulative scaffold offsets for one genome."""

from __future__ import annotations

from bisect import bisect_right
from typing import Iterable

import numpy as np

from alnview.errors import OutOfRangeError


class ScaffoldOffsetTable:
    """Prefix sums over sequence lengths.

    Entry ``i`` is the genome-wide coordinate at which sequence ``i``
    starts; the final entry is the total genome length.  The table is
    immutable once built.

    Parameters
    ----------
    lengths : iterable of int
        Finalised sequence lengths, in catalog order.

    Raises
    ------
    ValueError
        If any length is negative.

    Examples
    --------
    >>> table = ScaffoldOffsetTable([500, 700])
    >>> table.boundaries
    [0, 500, 1200]
    >>> table.to_global(1, 10)
    510
    """

    def __init__(self, lengths: Iterable[int]) -> None:
        lens = [int(n) for n in lengths]
        if any(n < 0 for n in lens):
            raise ValueError('Sequence lengths must be non-negative')
        offsets = [0]
        for n in lens:
            offsets.append(offsets[-1] + n)
        self._lengths: tuple[int, ...] = tuple(lens)
        self._offsets: tuple[int, ...] = tuple(offsets)
        self._array = np.asarray(offsets, dtype=np.int64)
        self._array.setflags(write=False)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def boundaries(self) -> list[int]:
        """Return a copy of the cumulative offsets (``n + 1`` entries)."""
        return list(self._offsets)

    @property
    def array(self) -> np.ndarray:
        """Read-only ``int64`` view of the offsets for vectorised lookups."""
        return self._array

    @property
    def total_length(self) -> int:
        """Return the genome length (the final offset)."""
        return self._offsets[-1]

    def __len__(self) -> int:
        """Return the number of sequences covered by the table."""
        return len(self._lengths)

    def __repr__(self) -> str:
        return f'ScaffoldOffsetTable(sequences={len(self)}, total={self.total_length})'

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ScaffoldOffsetTable):
            return NotImplemented
        return self._offsets == other._offsets

    def __hash__(self) -> int:
        return hash(self._offsets)

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= len(self._lengths):
            raise OutOfRangeError(
                f'Sequence index {index} out of range for {len(self._lengths)} sequences'
            )

    def offset(self, index: int) -> int:
        """Return the genome-wide start of sequence *index*."""
        self._check_index(index)
        return self._offsets[index]

    def length(self, index: int) -> int:
        """Return the length of sequence *index*."""
        self._check_index(index)
        return self._lengths[index]

    def end(self, index: int) -> int:
        """Return the genome-wide end of sequence *index* (exclusive)."""
        self._check_index(index)
        return self._offsets[index + 1]

    # ------------------------------------------------------------------
    # Coordinate mapping
    # ------------------------------------------------------------------

    def to_global(self, index: int, position: int) -> int:
        """Map an in-sequence position to a genome-wide coordinate.

        Parameters
        ----------
        index : int
            Sequence index.
        position : int
            Position within that sequence.

        Returns
        -------
        int
            ``offset[index] + position``.

        Raises
        ------
        OutOfRangeError
            If *index* is not covered by the table.
        """
        return self.offset(index) + position

    def locate(self, coord: float) -> int:
        """Return the index of the sequence that owns genome-wide *coord*.

        Uses a binary search over the offsets.  Coordinates on a boundary
        belong to the sequence that starts there; zero-length sequences
        never own a coordinate.  Coordinates at or beyond the genome end
        map to the last sequence.

        Raises
        ------
        OutOfRangeError
            If the table is empty or *coord* is negative.
        """
        if not self._lengths:
            raise OutOfRangeError('Cannot locate a coordinate in an empty genome')
        if coord < 0:
            raise OutOfRangeError(f'Negative genome coordinate {coord}')
        idx = bisect_right(self._offsets, coord) - 1
        return min(idx, len(self._lengths) - 1)

    def locate_many(self, starts: np.ndarray, ends: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Vectorised ownership lookup for interval endpoints.

        Parameters
        ----------
        starts : numpy.ndarray
            Low endpoint of each interval.
        ends : numpy.ndarray
            High endpoint of each interval (``ends >= starts``).

        Returns
        -------
        tuple of numpy.ndarray
            ``(start_owner, end_owner)`` sequence indices.  The high endpoint
            is exclusive, so an interval ending exactly on a boundary is owned
            by the sequence before it.  Zero-length intervals use the start
            owner for both.
        """
        n = len(self._lengths)
        lo = np.searchsorted(self._array, starts, side='right') - 1
        hi = np.searchsorted(self._array, ends, side='left') - 1
        lo = np.clip(lo, 0, max(n - 1, 0))
        hi = np.clip(hi, 0, max(n - 1, 0))
        hi = np.where(ends == starts, lo, hi)
        return lo, hi
