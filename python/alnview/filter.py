"""Sequence filters and derivation of reduced plots.

This module provides:
- :class:`SequenceFilter` — a predicate over ``(index, name)`` pairs
  matching sequence names, name prefixes or an inclusive index range.
- :func:`subset_plot` — build a standalone :class:`~alnview.plot.Plot`
  restricted to the sequences a pair of filters retain, with renumbered
  sequences, fresh scaffold offsets and rebuilt spatial indexes.

Examples
--------
>>> from alnview.filter import SequenceFilter
>>> f = SequenceFilter.from_names('chr1, chr2')
>>> f.matching_indices(['chr1', 'scaffold_7', 'chr2_random'])
[0, 2]
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Optional, Sequence

import numpy as np

from alnview.errors import NoMatchError
from alnview.records import Genome

if TYPE_CHECKING:
    from alnview.catalog import SequenceCatalog
    from alnview.plot import Plot

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SequenceFilter:
    """Select sequences by name, name prefix or index range.

    A sequence matches if its index lies in :attr:`index_range` **or** its
    name matches any entry of :attr:`names`.  A filter with neither
    criterion matches every sequence.

    Parameters
    ----------
    names : tuple of str, optional
        Names to keep.  With ``prefix=True`` (default) each entry also
        keeps every sequence whose name starts with it.
    index_range : (int, int) or None, optional
        Inclusive ``(start, end)`` index range to keep.
    prefix : bool, optional
        Treat :attr:`names` as prefixes as well as exact names.
    """

    names: tuple[str, ...] = ()
    index_range: Optional[tuple[int, int]] = None
    prefix: bool = True

    def __post_init__(self) -> None:
        # Accept any iterable of names, including a list.
        object.__setattr__(self, 'names', tuple(self.names))
        if self.index_range is not None:
            start, end = self.index_range
            if start < 0 or start > end:
                raise ValueError(f'Invalid index range {self.index_range!r}')

    @classmethod
    def from_names(cls, names_str: str, prefix: bool = True) -> 'SequenceFilter':
        """Create a filter from comma-separated names or prefixes.

        Parameters
        ----------
        names_str : str
            e.g. ``"chr1, chr2, scaffold_"``.  Blank entries are ignored.
        prefix : bool, optional
            Match entries as prefixes too.  Default is ``True``.
        """
        names = tuple(s.strip() for s in names_str.split(',') if s.strip())
        return cls(names=names, prefix=prefix)

    @classmethod
    def from_range(cls, range_str: str) -> 'SequenceFilter':
        """Create a filter from an inclusive index range such as ``"0-5"``.

        Raises
        ------
        ValueError
            If *range_str* is not ``start-end`` with ``start <= end``.
        """
        parts = range_str.split('-')
        if len(parts) != 2:
            raise ValueError(f"Range must be in format 'start-end', got: {range_str!r}")
        try:
            start = int(parts[0].strip())
            end = int(parts[1].strip())
        except ValueError as exc:
            raise ValueError(f'Range bounds must be integers, got: {range_str!r}') from exc
        if start > end:
            raise ValueError(f'Range start must be <= end, got: {range_str!r}')
        return cls(index_range=(start, end))

    def is_empty(self) -> bool:
        """Return ``True`` if the filter has no criteria (matches everything)."""
        return not self.names and self.index_range is None

    def matches(self, index: int, name: str) -> bool:
        """Return ``True`` if the sequence at *index* called *name* is kept."""
        if self.is_empty():
            return True
        if self.index_range is not None:
            start, end = self.index_range
            if start <= index <= end:
                return True
        for wanted in self.names:
            if name == wanted or (self.prefix and name.startswith(wanted)):
                return True
        return False

    def matching_indices(self, names: Sequence[str]) -> list[int]:
        """Return the indices of *names* kept by the filter, in order."""
        return [i for i, name in enumerate(names) if self.matches(i, name)]


def _axis_remap(
    old: 'SequenceCatalog', new: 'SequenceCatalog', kept: Sequence[int]
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Return ``(keep_mask, delta, new_index)`` indexed by old sequence index."""
    keep = np.zeros(len(old), dtype=bool)
    delta = np.zeros(len(old), dtype=np.int64)
    new_index = np.full(len(old), -1, dtype=np.int64)
    old_off = old.offsets
    new_off = new.offsets
    for new_i, old_i in enumerate(kept):
        keep[old_i] = True
        delta[old_i] = new_off.offset(new_i) - old_off.offset(old_i)
        new_index[old_i] = new_i
    return keep, delta, new_index


def _owners(
    seq: Optional[np.ndarray], catalog: 'SequenceCatalog', lo: np.ndarray, hi: np.ndarray
) -> tuple[np.ndarray, np.ndarray]:
    """Return ``(owner, inside)`` for each segment on one axis.

    *owner* is the source sequence when the layer carries it, otherwise the
    sequence owning the low endpoint.  *inside* is ``False`` for segments
    reaching past either end of their owner.
    """
    offsets = catalog.offsets
    if seq is None:
        seq = offsets.locate_many(lo, hi)[0]
    bounds = offsets.array
    inside = (lo >= bounds[seq]) & (hi <= bounds[seq + 1])
    return seq, inside


def subset_plot(
    plot: 'Plot',
    query_filter: Optional[SequenceFilter] = None,
    target_filter: Optional[SequenceFilter] = None,
) -> 'Plot':
    """Derive a standalone plot holding only the sequences the filters keep.

    Retained sequences keep their relative order and are renumbered from
    zero; scaffold offsets are recomputed from their lengths.  Each segment
    is assigned on each axis to the sequence it was stitched from, or, for
    layers built without source ids, to the sequence owning its low
    endpoint by binary search over the original offsets.  It survives only
    if both owners are retained.  Survivors are shifted by the change in their sequences'
    offsets, which preserves in-sequence positions and slope direction.
    Segments spanning a sequence boundary are dropped.

    If both filters keep every sequence, a structural copy of *plot* is
    returned instead.

    Parameters
    ----------
    plot : Plot
        Source plot.  It is not modified.
    query_filter : SequenceFilter or None, optional
        Filter for genome A.  ``None`` keeps everything.
    target_filter : SequenceFilter or None, optional
        Filter for genome B.  ``None`` keeps everything.

    Returns
    -------
    Plot

    Raises
    ------
    NoMatchError
        If a filter keeps no sequences on its axis.
    """
    from alnview.plot import Plot, SegmentLayer

    query_filter = query_filter or SequenceFilter()
    target_filter = target_filter or SequenceFilter()
    old_a = plot.catalog(Genome.A)
    old_b = plot.catalog(Genome.B)

    kept_a = query_filter.matching_indices(old_a.names)
    if not kept_a:
        raise NoMatchError(Genome.A.value)
    kept_b = target_filter.matching_indices(old_b.names)
    if not kept_b:
        raise NoMatchError(Genome.B.value)

    if len(kept_a) == len(old_a) and len(kept_b) == len(old_b):
        _log.debug('Filters keep every sequence; returning a copy of the plot')
        return plot.copy()

    new_a = old_a.subset(kept_a)
    new_b = old_b.subset(kept_b)
    keep_a, delta_a, index_a = _axis_remap(old_a, new_a, kept_a)
    keep_b, delta_b, index_b = _axis_remap(old_b, new_b, kept_b)

    layers = []
    for layer in plot.layers:
        a_own, a_inside = _owners(layer.aseq, old_a, layer.abeg, layer.aend)
        b_own, b_inside = _owners(
            layer.bseq,
            old_b,
            np.minimum(layer.bbeg, layer.bend),
            np.maximum(layer.bbeg, layer.bend),
        )

        inside = a_inside & b_inside
        keep = inside & keep_a[a_own] & keep_b[b_own]
        n_straddle = int((~inside).sum())
        if n_straddle:
            _log.debug(
                'Layer %r: dropped %d segment(s) spanning a sequence boundary',
                layer.name,
                n_straddle,
            )

        da = delta_a[a_own[keep]]
        db = delta_b[b_own[keep]]
        layers.append(
            SegmentLayer(
                layer.spec,
                layer.abeg[keep] + da,
                layer.aend[keep] + da,
                layer.bbeg[keep] + db,
                layer.bend[keep] + db,
                layer.reverse[keep],
                aseq=index_a[a_own[keep]],
                bseq=index_b[b_own[keep]],
                node_capacity=layer.index.node_capacity,
            )
        )

    derived = Plot(
        new_a, new_b, layers, n_skipped=plot.n_skipped, n_unlayered=plot.n_unlayered
    )
    _log.info(
        'Filtered plot: %d/%d sequences on A, %d/%d on B, %d/%d segments kept',
        len(new_a),
        len(old_a),
        len(new_b),
        len(old_b),
        derived.segment_count(),
        plot.segment_count(),
    )
    return derived
