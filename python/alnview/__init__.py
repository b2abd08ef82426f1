"""
alnview: genome-vs-genome dot plot model with fast region queries.

This package provides:
- Stitching of per-sequence alignment records onto concatenated genome axes
- Scaffold offset tables and sequence catalogs for both genomes
- Bulk-loaded R-tree indexes answering per-frame pan/zoom region queries
- Sequence filters deriving standalone sub-plots
- Background plot loading and PAF file input

Examples
--------
Basic usage:

>>> from alnview import build_plot
>>> plot = build_plot(
...     [(0, 0, 100, 200, 300, 400, True)],
...     [('chrA', 1000)],
...     [('chrB', 1000)],
... )
>>> plot.scaffold_boundaries('A')
[0, 1000]
>>> plot.query_region(0, 0, 0, 1000, 1000)
[AlignmentSegment(abeg=100, aend=200, bbeg=700, bend=600, reverse=True)]
"""

from alnview.catalog import CatalogBuilder, Sequence, SequenceCatalog  # noqa: F401
from alnview.errors import (  # noqa: F401
    AlnViewError,
    BuildError,
    FilterError,
    InvalidRecordError,
    NoMatchError,
    OutOfRangeError,
)
from alnview.filter import SequenceFilter, subset_plot  # noqa: F401
from alnview.layers import LayerSpec  # noqa: F401
from alnview.loader import PlotLoader  # noqa: F401
from alnview.offsets import ScaffoldOffsetTable  # noqa: F401
from alnview.paf_io import PafAlignment, PafRecord, parse_paf_file  # noqa: F401
from alnview.plot import Plot, SegmentLayer, build_plot  # noqa: F401
from alnview.records import AlignmentSegment, Genome, RawAlignmentRecord  # noqa: F401
from alnview.spatial import SpatialIndex  # noqa: F401
from alnview.stitch import CoordinateStitcher  # noqa: F401

__version__ = '0.1.0'
__all__ = [
    'AlignmentSegment',
    'AlnViewError',
    'BuildError',
    'CatalogBuilder',
    'CoordinateStitcher',
    'FilterError',
    'Genome',
    'InvalidRecordError',
    'LayerSpec',
    'NoMatchError',
    'OutOfRangeError',
    'PafAlignment',
    'PafRecord',
    'Plot',
    'PlotLoader',
    'RawAlignmentRecord',
    'ScaffoldOffsetTable',
    'SegmentLayer',
    'Sequence',
    'SequenceCatalog',
    'SequenceFilter',
    'SpatialIndex',
    'build_plot',
    'parse_paf_file',
    'subset_plot',
]
