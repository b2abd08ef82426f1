"""Alignment record types shared by the stitching and indexing stages.

This module provides:
- :class:`Genome` — the two plot axes (A = query, B = target).
- :class:`RawAlignmentRecord` — one record as delivered by an alignment
  reader, with coordinates local to each sequence.
- :class:`AlignmentSegment` — one record stitched into genome-wide
  coordinates, ready for spatial indexing.
"""

from __future__ import annotations

from dataclasses import dataclass
import enum
import operator

from alnview.errors import InvalidRecordError

_INTEGER_FIELDS = (
    'query_id',
    'target_id',
    'query_start',
    'query_end',
    'target_start',
    'target_end',
    'diffs',
)


class Genome(str, enum.Enum):
    """Plot axis identifier.

    Genome ``A`` holds the query sequences (x axis) and genome ``B`` the
    target sequences (y axis).
    """

    A = 'A'
    B = 'B'

    @property
    def placeholder_prefix(self) -> str:
        """Prefix used when synthesising names for unnamed sequences."""
        return 'query' if self is Genome.A else 'target'

    @classmethod
    def coerce(cls, value: Genome | str | int) -> Genome:
        """Return a :class:`Genome` from a member, label or axis number.

        Parameters
        ----------
        value : Genome, str or int
            ``Genome.A`` / ``'A'`` / ``'query'`` / ``0`` for the query axis,
            ``Genome.B`` / ``'B'`` / ``'target'`` / ``1`` for the target axis.

        Returns
        -------
        Genome

        Raises
        ------
        ValueError
            If *value* names neither axis.
        """
        if isinstance(value, Genome):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            if value == 0:
                return cls.A
            if value == 1:
                return cls.B
        elif isinstance(value, str):
            label = value.strip().lower()
            if label in ('a', 'query'):
                return cls.A
            if label in ('b', 'target'):
                return cls.B
        raise ValueError(f'Unknown genome {value!r}; expected A/B, query/target or 0/1')


@dataclass(frozen=True)
class RawAlignmentRecord:
    """A single alignment record from an upstream reader.

    All coordinates are local to their sequence, 0-based, with exclusive
    ends.  Target coordinates are always expressed on the forward strand,
    even for reverse-complement alignments.

    Parameters
    ----------
    query_id : int
        Index of the query sequence in genome A.
    target_id : int
        Index of the target sequence in genome B.
    query_start, query_end : int
        Aligned interval on the query sequence.
    target_start, target_end : int
        Aligned interval on the target sequence (forward strand).
    reverse : bool
        ``True`` for a reverse-complement alignment.
    diffs : int, optional
        Number of edit differences, used for identity layering.
        Default is ``0``.
    """

    query_id: int
    target_id: int
    query_start: int
    query_end: int
    target_start: int
    target_end: int
    reverse: bool = False
    diffs: int = 0

    @property
    def query_aligned_len(self) -> int:
        """Return ``query_end - query_start``."""
        return self.query_end - self.query_start

    @property
    def identity(self) -> float:
        """Return percent identity over the query span.

        Returns
        -------
        float
            ``100 * (len - diffs) / len``, or ``0.0`` for a zero-length
            alignment.
        """
        aln_len = self.query_aligned_len
        if aln_len <= 0:
            return 0.0
        return 100.0 * (aln_len - self.diffs) / aln_len

    def validate(self) -> None:
        """Raise :class:`~alnview.errors.InvalidRecordError` for malformed records.

        A record is malformed if any id, coordinate or difference count is
        not an integer or is negative, or if an interval ends before it
        starts.
        """
        for name in _INTEGER_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool):
                raise InvalidRecordError(f'{name} must be an integer, got {value!r}')
            try:
                operator.index(value)
            except TypeError:
                raise InvalidRecordError(
                    f'{name} must be an integer, got {value!r}'
                ) from None
        if self.diffs < 0:
            raise InvalidRecordError(f'Negative diffs in record: {self.diffs}')
        if self.query_id < 0 or self.target_id < 0:
            raise InvalidRecordError(
                f'Negative sequence id in record: query_id={self.query_id}, '
                f'target_id={self.target_id}'
            )
        coords = (self.query_start, self.query_end, self.target_start, self.target_end)
        if min(coords) < 0:
            raise InvalidRecordError(f'Negative coordinate in record: {coords}')
        if self.query_start > self.query_end:
            raise InvalidRecordError(
                f'query_start {self.query_start} > query_end {self.query_end}'
            )
        if self.target_start > self.target_end:
            raise InvalidRecordError(
                f'target_start {self.target_start} > target_end {self.target_end}'
            )


@dataclass(frozen=True)
class AlignmentSegment:
    """One alignment in genome-wide coordinates.

    ``abeg <= aend`` always holds.  Forward alignments run ``bbeg < bend``;
    reverse-complement alignments run backwards on the B axis
    (``bbeg > bend``).  A segment with ``bbeg == bend`` is a single-point
    degenerate case and is classed as forward.
    """

    abeg: int
    aend: int
    bbeg: int
    bend: int
    reverse: bool = False

    @property
    def bbox(self) -> tuple[int, int, int, int]:
        """Return ``(xmin, xmax, ymin, ymax)``."""
        return (
            min(self.abeg, self.aend),
            max(self.abeg, self.aend),
            min(self.bbeg, self.bend),
            max(self.bbeg, self.bend),
        )

    def overlaps(self, x: float, y: float, width: float, height: float) -> bool:
        """Return ``True`` if the bounding box touches ``[x, x+width] x [y, y+height]``."""
        xmin, xmax, ymin, ymax = self.bbox
        return xmax >= x and xmin <= x + width and ymax >= y and ymin <= y + height
