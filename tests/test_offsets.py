"""Tests for scaffold offset tables and sequence catalogs."""

import numpy as np
import pytest

from alnview.catalog import CatalogBuilder, SequenceCatalog, placeholder_name
from alnview.errors import OutOfRangeError
from alnview.offsets import ScaffoldOffsetTable
from alnview.records import Genome

# ---------------------------------------------------------------------------
# ScaffoldOffsetTable
# ---------------------------------------------------------------------------


class TestScaffoldOffsetTable:
    def test_prefix_sums(self):
        table = ScaffoldOffsetTable([500, 700])
        assert table.boundaries == [0, 500, 1200]
        assert table.total_length == 1200
        assert len(table) == 2

    def test_empty_table(self):
        table = ScaffoldOffsetTable([])
        assert table.boundaries == [0]
        assert table.total_length == 0
        assert len(table) == 0

    def test_to_global(self):
        table = ScaffoldOffsetTable([500, 700])
        assert table.to_global(1, 10) == 510
        assert table.to_global(0, 10) == 10

    def test_offset_out_of_range(self):
        table = ScaffoldOffsetTable([500, 700])
        with pytest.raises(OutOfRangeError):
            table.offset(2)
        with pytest.raises(OutOfRangeError):
            table.offset(-1)

    def test_negative_length_rejected(self):
        with pytest.raises(ValueError):
            ScaffoldOffsetTable([10, -1])

    def test_end_and_length(self):
        table = ScaffoldOffsetTable([500, 700])
        assert table.end(0) == 500
        assert table.end(1) == 1200
        assert table.length(1) == 700

    def test_boundaries_is_a_copy(self):
        table = ScaffoldOffsetTable([5, 5])
        table.boundaries.append(99)
        assert table.boundaries == [0, 5, 10]

    def test_array_is_read_only(self):
        table = ScaffoldOffsetTable([5, 5])
        with pytest.raises(ValueError):
            table.array[0] = 1

    def test_non_decreasing_with_zero_lengths(self):
        table = ScaffoldOffsetTable([3, 0, 0, 4])
        bounds = table.boundaries
        assert all(a <= b for a, b in zip(bounds, bounds[1:]))
        assert bounds[-1] == table.total_length == 7


class TestLocate:
    def test_locate_interior_and_boundary(self):
        table = ScaffoldOffsetTable([500, 700])
        assert table.locate(0) == 0
        assert table.locate(499) == 0
        assert table.locate(500) == 1
        assert table.locate(1199) == 1

    def test_locate_past_end_maps_to_last(self):
        table = ScaffoldOffsetTable([500, 700])
        assert table.locate(1200) == 1
        assert table.locate(5000) == 1

    def test_locate_skips_zero_length(self):
        table = ScaffoldOffsetTable([500, 0, 700])
        assert table.locate(500) == 2

    def test_locate_negative_raises(self):
        with pytest.raises(OutOfRangeError):
            ScaffoldOffsetTable([10]).locate(-1)

    def test_locate_empty_raises(self):
        with pytest.raises(OutOfRangeError):
            ScaffoldOffsetTable([]).locate(0)

    def test_locate_many_exclusive_end(self):
        table = ScaffoldOffsetTable([500, 700])
        starts = np.array([10, 400, 500, 450, 700])
        ends = np.array([500, 600, 600, 450, 700])
        lo, hi = table.locate_many(starts, ends)
        assert lo.tolist() == [0, 0, 1, 0, 1]
        # [10, 500] ends on the boundary and stays in sequence 0.
        assert hi.tolist() == [0, 1, 1, 0, 1]


# ---------------------------------------------------------------------------
# SequenceCatalog / CatalogBuilder
# ---------------------------------------------------------------------------


class TestSequenceCatalog:
    def test_from_entries(self):
        cat = SequenceCatalog.from_entries('A', [('chr1', 500), 'chr2', ('chr3', None)])
        assert cat.names == ['chr1', 'chr2', 'chr3']
        assert cat.lengths == [500, 0, 0]
        assert cat.offsets.boundaries == [0, 500, 500, 500]

    def test_subset_renumbers(self):
        cat = SequenceCatalog.from_entries('B', [('a', 1), ('b', 2), ('c', 3)])
        sub = cat.subset([0, 2])
        assert [s.index for s in sub] == [0, 1]
        assert sub.names == ['a', 'c']
        assert sub.offsets.boundaries == [0, 1, 4]

    def test_getitem_out_of_range(self):
        cat = SequenceCatalog.from_entries('A', [('a', 1)])
        with pytest.raises(OutOfRangeError):
            cat[1]

    def test_index_of(self):
        cat = SequenceCatalog.from_entries('A', [('a', 1), ('b', 2)])
        assert cat.index_of('b') == 1
        with pytest.raises(KeyError):
            cat.index_of('zzz')


class TestCatalogBuilder:
    def test_lengths_inferred_from_max_end(self):
        builder = CatalogBuilder(Genome.A, ['s0', 's1'])
        builder.observe(0, 100)
        builder.observe(0, 40)
        builder.observe(1, 7)
        cat = builder.build()
        assert cat.lengths == [100, 7]

    def test_grows_with_placeholder_names(self):
        builder = CatalogBuilder(Genome.B)
        builder.check(3, 10)
        builder.observe(3, 10)
        cat = builder.build()
        assert len(cat) == 4
        assert cat.names == [placeholder_name(Genome.B, i) for i in range(4)]
        assert cat.names[3] == 'target_3'
        assert cat.lengths == [0, 0, 0, 10]

    def test_declared_length_is_authoritative(self):
        builder = CatalogBuilder('A', [('chr1', 1000)])
        builder.observe(0, 10)
        assert builder.build().lengths == [1000]

    def test_end_beyond_declared_length(self):
        builder = CatalogBuilder('A', [('chr1', 1000)])
        with pytest.raises(OutOfRangeError):
            builder.check(0, 1001)

    def test_strict_rejects_unknown_index(self):
        builder = CatalogBuilder('A', ['chr1'], strict=True)
        builder.check(0, 5)
        with pytest.raises(OutOfRangeError):
            builder.check(1, 5)
