"""Genome-vs-genome plot model and its construction from alignment records.

This module provides:
- :class:`SegmentLayer` — the segments of one layer, stored as read-only
  numpy columns with their own :class:`~alnview.spatial.SpatialIndex`.
- :class:`Plot` — catalogs, scaffold offsets and layers for a pair of
  genomes; immutable once built and safe to query from several threads.
- :func:`build_plot` — two-pass construction from a record stream.

Examples
--------
>>> from alnview.plot import build_plot
>>> plot = build_plot(
...     [(0, 0, 100, 200, 300, 400, False)],
...     [('chrA', 1000)],
...     [('chrB', 1000)],
... )
>>> plot.query_region(0, 0, 0, 1000, 1000)
[AlignmentSegment(abeg=100, aend=200, bbeg=300, bend=400, reverse=False)]
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import logging
from typing import TYPE_CHECKING, Iterable, Optional, Sequence, Union

import numpy as np

from alnview.catalog import CatalogBuilder, NameEntry, SequenceCatalog
from alnview.errors import AlnViewError, BuildError, InvalidRecordError
from alnview.layers import LayerSpec, assign_layer, normalise_layers
from alnview.offsets import ScaffoldOffsetTable
from alnview.records import AlignmentSegment, Genome, RawAlignmentRecord
from alnview.spatial import DEFAULT_NODE_CAPACITY, SpatialIndex
from alnview.stitch import CoordinateStitcher

if TYPE_CHECKING:
    from alnview.filter import SequenceFilter

_log = logging.getLogger(__name__)

GenomeLike = Union[Genome, str, int]
RecordLike = Union[RawAlignmentRecord, Sequence]


def _column(values, dtype=np.int64) -> np.ndarray:
    arr = np.array(values, dtype=dtype)
    arr.setflags(write=False)
    return arr


def _owner_column(
    seq, offsets: Optional[ScaffoldOffsetTable], lo: np.ndarray, hi: np.ndarray, n: int
) -> Optional[np.ndarray]:
    if seq is None:
        if offsets is None or not len(offsets):
            return None
        seq = offsets.locate_many(lo, hi)[0]
    arr = _column(seq)
    if len(arr) != n:
        raise ValueError('Sequence index column must match the segment columns')
    return arr


# ---------------------------------------------------------------------------
# SegmentLayer
# ---------------------------------------------------------------------------


class SegmentLayer:
    """Segments belonging to one layer plus their spatial index.

    Every column is a read-only numpy array and the layer is never modified
    after construction.

    Parameters
    ----------
    spec : LayerSpec
        The thresholds that selected these segments.
    abeg, aend, bbeg, bend : array-like of int
        Genome-wide segment coordinates.
    reverse : array-like of bool
        Reverse-complement flag per segment.
    aseq, bseq : array-like of int, optional
        Index of the genome A / genome B sequence each segment came from.
        When omitted, the owner is looked up from the coordinates, which is
        ambiguous for a zero-length span sitting on a sequence boundary.
    node_capacity : int, optional
        R-tree node capacity.  Default is
        :data:`~alnview.spatial.DEFAULT_NODE_CAPACITY`.
    offsets_a, offsets_b : ScaffoldOffsetTable, optional
        Offsets used to look up *aseq* / *bseq* when they are omitted.
    """

    def __init__(
        self,
        spec: LayerSpec,
        abeg,
        aend,
        bbeg,
        bend,
        reverse,
        aseq=None,
        bseq=None,
        node_capacity: int = DEFAULT_NODE_CAPACITY,
        offsets_a: Optional[ScaffoldOffsetTable] = None,
        offsets_b: Optional[ScaffoldOffsetTable] = None,
    ) -> None:
        self._spec = spec
        self._abeg = _column(abeg)
        self._aend = _column(aend)
        self._bbeg = _column(bbeg)
        self._bend = _column(bend)
        self._reverse = _column(reverse, dtype=bool)
        n = len(self._abeg)
        if not (
            len(self._aend) == len(self._bbeg) == len(self._bend) == len(self._reverse) == n
        ):
            raise ValueError('Segment columns must all have the same length')
        self._aseq = _owner_column(aseq, offsets_a, self._abeg, self._aend, n)
        self._bseq = _owner_column(
            bseq,
            offsets_b,
            np.minimum(self._bbeg, self._bend),
            np.maximum(self._bbeg, self._bend),
            n,
        )
        self._index = SpatialIndex.from_segments(
            self._abeg, self._aend, self._bbeg, self._bend, node_capacity=node_capacity
        )

    @classmethod
    def from_segments(
        cls,
        spec: LayerSpec,
        segments: Iterable[AlignmentSegment],
        node_capacity: int = DEFAULT_NODE_CAPACITY,
        offsets_a: Optional[ScaffoldOffsetTable] = None,
        offsets_b: Optional[ScaffoldOffsetTable] = None,
    ) -> 'SegmentLayer':
        """Build a layer from :class:`~alnview.records.AlignmentSegment` objects.

        Source sequences are looked up from *offsets_a* / *offsets_b* when
        given.
        """
        segs = list(segments)
        return cls(
            spec,
            [s.abeg for s in segs],
            [s.aend for s in segs],
            [s.bbeg for s in segs],
            [s.bend for s in segs],
            [s.reverse for s in segs],
            node_capacity=node_capacity,
            offsets_a=offsets_a,
            offsets_b=offsets_b,
        )

    @property
    def spec(self) -> LayerSpec:
        return self._spec

    @property
    def name(self) -> str:
        return self._spec.name

    @property
    def index(self) -> SpatialIndex:
        return self._index

    @property
    def abeg(self) -> np.ndarray:
        return self._abeg

    @property
    def aend(self) -> np.ndarray:
        return self._aend

    @property
    def bbeg(self) -> np.ndarray:
        return self._bbeg

    @property
    def bend(self) -> np.ndarray:
        return self._bend

    @property
    def reverse(self) -> np.ndarray:
        return self._reverse

    @property
    def aseq(self) -> Optional[np.ndarray]:
        """Genome A sequence index per segment, or ``None`` if unknown."""
        return self._aseq

    @property
    def bseq(self) -> Optional[np.ndarray]:
        """Genome B sequence index per segment, or ``None`` if unknown."""
        return self._bseq

    def __len__(self) -> int:
        return len(self._abeg)

    def __repr__(self) -> str:
        return f'SegmentLayer(name={self.name!r}, segments={len(self)})'

    def segment(self, i: int) -> AlignmentSegment:
        """Return segment *i* as an :class:`AlignmentSegment`."""
        return AlignmentSegment(
            int(self._abeg[i]),
            int(self._aend[i]),
            int(self._bbeg[i]),
            int(self._bend[i]),
            bool(self._reverse[i]),
        )

    def segments(self) -> list[AlignmentSegment]:
        """Return every segment in storage order."""
        return [self.segment(i) for i in range(len(self))]

    def query(self, x: float, y: float, width: float, height: float) -> list[AlignmentSegment]:
        """Return segments whose bounding box overlaps the rectangle."""
        return [self.segment(i) for i in self._index.query(x, y, width, height)]


# ---------------------------------------------------------------------------
# Plot
# ---------------------------------------------------------------------------


class Plot:
    """Dot-plot model for genome A (x axis) against genome B (y axis).

    A plot is built once, by :func:`build_plot` or by :meth:`filtered`, and
    never modified afterwards.

    Parameters
    ----------
    catalog_a : SequenceCatalog
        Sequences of genome A.
    catalog_b : SequenceCatalog
        Sequences of genome B.
    layers : sequence of SegmentLayer
        Layers in display order.
    n_skipped : int, optional
        Records dropped as malformed during construction.
    n_unlayered : int, optional
        Valid segments that met no layer's thresholds.
    """

    def __init__(
        self,
        catalog_a: SequenceCatalog,
        catalog_b: SequenceCatalog,
        layers: Sequence[SegmentLayer],
        n_skipped: int = 0,
        n_unlayered: int = 0,
    ) -> None:
        self._catalogs = {Genome.A: catalog_a, Genome.B: catalog_b}
        self._layers: tuple[SegmentLayer, ...] = tuple(layers)
        self._n_skipped = n_skipped
        self._n_unlayered = n_unlayered

    @property
    def n_skipped(self) -> int:
        """Records dropped as malformed while building the source plot."""
        return self._n_skipped

    @property
    def n_unlayered(self) -> int:
        """Valid segments that met no layer thresholds."""
        return self._n_unlayered

    # ------------------------------------------------------------------
    # Genome metadata
    # ------------------------------------------------------------------

    def catalog(self, genome: GenomeLike) -> SequenceCatalog:
        """Return the :class:`SequenceCatalog` for *genome*."""
        return self._catalogs[Genome.coerce(genome)]

    def offsets(self, genome: GenomeLike) -> ScaffoldOffsetTable:
        """Return the :class:`ScaffoldOffsetTable` for *genome*."""
        return self.catalog(genome).offsets

    def total_length(self, genome: GenomeLike) -> int:
        """Return the concatenated length of *genome* (the zoom-to-fit extent)."""
        return self.offsets(genome).total_length

    def scaffold_boundaries(self, genome: GenomeLike) -> list[int]:
        """Return cumulative scaffold offsets for drawing gridlines.

        The list has one entry per sequence plus a final entry equal to
        :meth:`total_length`.
        """
        return self.offsets(genome).boundaries

    def sequence_names(self, genome: GenomeLike) -> list[str]:
        return self.catalog(genome).names

    def sequence_lengths(self, genome: GenomeLike) -> list[int]:
        return self.catalog(genome).lengths

    def locate(self, genome: GenomeLike, coord: float) -> tuple[int, str, float]:
        """Map a genome-wide coordinate to ``(index, name, local_position)``.

        Raises
        ------
        OutOfRangeError
            If the genome has no sequences or *coord* is negative.
        """
        cat = self.catalog(genome)
        idx = cat.offsets.locate(coord)
        return idx, cat[idx].name, coord - cat.offsets.offset(idx)

    # ------------------------------------------------------------------
    # Layers and queries
    # ------------------------------------------------------------------

    def layer_count(self) -> int:
        return len(self._layers)

    @property
    def layer_names(self) -> list[str]:
        return [layer.name for layer in self._layers]

    def layer(self, layer: int) -> SegmentLayer:
        """Return layer number *layer*.

        Raises
        ------
        IndexError
            If *layer* is not a valid layer number.
        """
        if layer < 0 or layer >= len(self._layers):
            raise IndexError(f'Layer {layer} out of range ({len(self._layers)} layers)')
        return self._layers[layer]

    @property
    def layers(self) -> tuple[SegmentLayer, ...]:
        return self._layers

    def segments(self, layer: int) -> list[AlignmentSegment]:
        """Return every segment of *layer*."""
        return self.layer(layer).segments()

    def segment_count(self, layer: Optional[int] = None) -> int:
        """Return the segment count of one layer, or of all layers if ``None``."""
        if layer is None:
            return sum(len(lay) for lay in self._layers)
        return len(self.layer(layer))

    def query_region(
        self, layer: int, x: float, y: float, width: float, height: float
    ) -> list[AlignmentSegment]:
        """Return the segments of *layer* visible in a rectangle.

        Every segment whose bounding box overlaps
        ``[x, x + width] x [y, y + height]`` is returned.  A rectangle with
        zero or negative area, or lying outside the plot, gives ``[]``.
        """
        return self.layer(layer).query(x, y, width, height)

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def filtered(
        self,
        query_filter: Optional['SequenceFilter'] = None,
        target_filter: Optional['SequenceFilter'] = None,
    ) -> 'Plot':
        """Return a standalone plot restricted to the matching sequences.

        See :func:`alnview.filter.subset_plot`.

        Raises
        ------
        NoMatchError
            If either filter retains no sequences.
        """
        from alnview.filter import subset_plot

        return subset_plot(self, query_filter, target_filter)

    def copy(self) -> 'Plot':
        """Return a new :class:`Plot` sharing this plot's immutable parts."""
        return Plot(
            self._catalogs[Genome.A],
            self._catalogs[Genome.B],
            self._layers,
            n_skipped=self.n_skipped,
            n_unlayered=self.n_unlayered,
        )

    def __repr__(self) -> str:
        return (
            f'Plot(A={len(self.catalog(Genome.A))} seqs/{self.total_length(Genome.A)} bp, '
            f'B={len(self.catalog(Genome.B))} seqs/{self.total_length(Genome.B)} bp, '
            f'layers={self.layer_count()}, segments={self.segment_count()})'
        )


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def _coerce_record(rec: RecordLike) -> RawAlignmentRecord:
    if isinstance(rec, RawAlignmentRecord):
        return rec
    try:
        return RawAlignmentRecord(*rec)
    except TypeError as exc:
        raise InvalidRecordError(f'Cannot interpret {rec!r} as an alignment record') from exc


def _build_layers(
    specs: Sequence[LayerSpec],
    columns: list[list[list]],
    node_capacity: int,
    workers: Optional[int],
) -> list[SegmentLayer]:
    def make(i: int) -> SegmentLayer:
        layer = SegmentLayer(specs[i], *columns[i], node_capacity=node_capacity)
        _log.info('Layer %r: %d segments indexed', specs[i].name, len(layer))
        return layer

    if workers and workers > 1 and len(specs) > 1:
        with ThreadPoolExecutor(max_workers=min(workers, len(specs))) as pool:
            return list(pool.map(make, range(len(specs))))
    return [make(i) for i in range(len(specs))]


def build_plot(
    records: Iterable[RecordLike],
    genome_a_names: Iterable[NameEntry] = (),
    genome_b_names: Iterable[NameEntry] = (),
    layers: Optional[Iterable[LayerSpec]] = None,
    workers: Optional[int] = None,
    strict_catalog: bool = False,
    node_capacity: int = DEFAULT_NODE_CAPACITY,
) -> Plot:
    """Build a :class:`Plot` from a stream of raw alignment records.

    The record stream is read once into memory.  A first pass validates
    records and finalises every sequence length (lengths not supplied by
    the reader become the largest end coordinate seen); a second pass
    stitches the surviving records into genome-wide segments, which are
    then split into layers and indexed.

    Parameters
    ----------
    records : iterable of RawAlignmentRecord or tuple
        Records, or tuples in ``RawAlignmentRecord`` field order.
    genome_a_names : iterable of str or (str, int or None), optional
        Genome A sequence names, optionally with authoritative lengths.
        May be empty, in which case placeholder names are synthesised.
    genome_b_names : iterable of str or (str, int or None), optional
        Genome B sequence names, as for *genome_a_names*.
    layers : iterable of LayerSpec, optional
        Layer thresholds.  Each segment joins the first layer it satisfies.
        Defaults to a single unfiltered layer.
    workers : int or None, optional
        Worker threads for stitching and per-layer index builds.  ``None``
        (default) builds on the calling thread.
    strict_catalog : bool, optional
        Drop records referencing sequences beyond the supplied names
        instead of synthesising placeholders.  Default is ``False``.
    node_capacity : int, optional
        R-tree node capacity.

    Returns
    -------
    Plot
        The finished plot.  ``Plot.n_skipped`` counts dropped records.

    Raises
    ------
    BuildError
        If reading *records* fails, or records were supplied but none of
        them could be used.
    """
    specs = normalise_layers(layers)
    builder_a = CatalogBuilder(Genome.A, genome_a_names, strict=strict_catalog)
    builder_b = CatalogBuilder(Genome.B, genome_b_names, strict=strict_catalog)

    try:
        raw = list(records)
    except Exception as exc:
        raise BuildError(f'Failed to read alignment records: {exc}') from exc

    # Pass 1: validate and grow sequence lengths.
    valid: list[RawAlignmentRecord] = []
    n_skipped = 0
    for pos, item in enumerate(raw):
        try:
            rec = _coerce_record(item)
            rec.validate()
            builder_a.check(rec.query_id, rec.query_end)
            builder_b.check(rec.target_id, rec.target_end)
        except AlnViewError as exc:
            n_skipped += 1
            _log.debug('Skipping record %d: %s', pos, exc)
            continue
        builder_a.observe(rec.query_id, rec.query_end)
        builder_b.observe(rec.target_id, rec.target_end)
        valid.append(rec)

    catalog_a = builder_a.build()
    catalog_b = builder_b.build()
    _log.info(
        'Read %d records: genome A has %d sequences (%d bp), genome B has %d sequences (%d bp)',
        len(raw),
        len(catalog_a),
        catalog_a.total_length,
        len(catalog_b),
        catalog_b.total_length,
    )

    # Pass 2: stitch onto the finalised offsets.
    stitcher = CoordinateStitcher(catalog_a.offsets, catalog_b.offsets)
    stitched, failed = stitcher.stitch_all(valid, workers=workers)
    for pos, exc in failed:
        _log.debug('Dropping record %r: %s', valid[pos], exc)
    n_skipped += len(failed)

    if raw and not stitched:
        raise BuildError(f'None of the {len(raw)} alignment records could be used')
    if n_skipped:
        _log.warning('Skipped %d malformed record(s) of %d', n_skipped, len(raw))

    columns: list[list[list]] = [[[], [], [], [], [], [], []] for _ in specs]
    n_unlayered = 0
    for pos, seg in stitched:
        li = assign_layer(valid[pos], specs)
        if li < 0:
            n_unlayered += 1
            continue
        cols = columns[li]
        cols[0].append(seg.abeg)
        cols[1].append(seg.aend)
        cols[2].append(seg.bbeg)
        cols[3].append(seg.bend)
        cols[4].append(seg.reverse)
        cols[5].append(valid[pos].query_id)
        cols[6].append(valid[pos].target_id)
    if n_unlayered:
        _log.info('%d segment(s) met no layer thresholds', n_unlayered)

    built = _build_layers(specs, columns, node_capacity, workers)
    return Plot(catalog_a, catalog_b, built, n_skipped=n_skipped, n_unlayered=n_unlayered)
