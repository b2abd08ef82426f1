"""Tests for sequence filters and derived plots."""

from collections import Counter

import pytest

from alnview.catalog import SequenceCatalog
from alnview.errors import FilterError, NoMatchError
from alnview.filter import SequenceFilter, subset_plot
from alnview.layers import LayerSpec
from alnview.plot import Plot, SegmentLayer, build_plot
from alnview.records import AlignmentSegment, RawAlignmentRecord
from tests.test_data import GENOME_A, GENOME_B, RECORDS


def segment_multiset(plot: Plot) -> Counter:
    counts: Counter = Counter()
    for i in range(plot.layer_count()):
        counts.update(plot.segments(i))
    return counts


# ---------------------------------------------------------------------------
# SequenceFilter
# ---------------------------------------------------------------------------


class TestSequenceFilter:
    def test_empty_filter_matches_all(self):
        f = SequenceFilter()
        assert f.is_empty()
        assert f.matches(0, 'chr1')
        assert f.matches(5, 'scaffold_10')

    def test_exact_name_match(self):
        f = SequenceFilter.from_names('chr1,chr2')
        assert f.matches(0, 'chr1')
        assert f.matches(1, 'chr2')
        assert not f.matches(2, 'chr3')

    def test_prefix_match(self):
        f = SequenceFilter.from_names('chr')
        assert f.matches(0, 'chr1')
        assert f.matches(1, 'chr2_scaffold')
        assert not f.matches(2, 'scaffold_1')

    def test_exact_only(self):
        f = SequenceFilter.from_names('chr1', prefix=False)
        assert f.matches(0, 'chr1')
        assert not f.matches(1, 'chr10')

    def test_blank_entries_ignored(self):
        f = SequenceFilter.from_names(' chr1 , , ')
        assert f.names == ('chr1',)

    def test_range_filter(self):
        f = SequenceFilter.from_range('2-5')
        assert not f.matches(1, 'any')
        assert f.matches(2, 'any')
        assert f.matches(5, 'any')
        assert not f.matches(6, 'any')

    @pytest.mark.parametrize('text', ['5', '1-2-3', 'a-b', '5-2'])
    def test_bad_range_text(self, text):
        with pytest.raises(ValueError):
            SequenceFilter.from_range(text)

    def test_combined_filters_are_or(self):
        f = SequenceFilter(names=['chr1'], index_range=(0, 10))
        assert f.matches(0, 'chr1')
        assert f.matches(5, 'scaffold')
        assert not f.matches(15, 'scaffold')

    def test_matching_indices_keep_order(self):
        f = SequenceFilter.from_names('chr')
        assert f.matching_indices(['chr1', 'x', 'chr2', 'y']) == [0, 2]


# ---------------------------------------------------------------------------
# subset_plot
# ---------------------------------------------------------------------------


class TestSubsetPlot:
    def test_retain_second_query_sequence(self):
        plot = build_plot(
            [
                RawAlignmentRecord(0, 0, 10, 20, 0, 10),
                RawAlignmentRecord(1, 0, 10, 20, 30, 40),
            ],
            [('s0', 500), ('s1', 700)],
            [('t', 100)],
        )
        sub = plot.filtered(SequenceFilter.from_range('1-1'))
        assert sub.sequence_names('A') == ['s1']
        assert sub.scaffold_boundaries('A') == [0, 700]
        assert sub.segments(0) == [AlignmentSegment(10, 20, 30, 40, False)]
        # source plot untouched
        assert plot.scaffold_boundaries('A') == [0, 500, 1200]
        assert plot.segment_count() == 2

    def test_query_side_filter(self, sample_plot):
        sub = sample_plot.filtered(SequenceFilter.from_names('chr2'))
        assert sub.total_length('A') == 700
        assert sub.total_length('B') == 1400
        assert segment_multiset(sub) == Counter(
            [
                AlignmentSegment(10, 60, 800, 850, False),
                AlignmentSegment(100, 150, 1400, 1350, True),
                AlignmentSegment(600, 700, 0, 100, False),
            ]
        )

    def test_target_side_filter_keeps_slope(self, sample_plot):
        sub = sample_plot.filtered(target_filter=SequenceFilter.from_names('ctgY'))
        assert sub.scaffold_boundaries('B') == [0, 1000]
        assert segment_multiset(sub) == Counter(
            [
                AlignmentSegment(200, 300, 900, 800, True),
                AlignmentSegment(510, 560, 500, 550, False),
            ]
        )
        for seg in sub.segments(0):
            assert seg.reverse == (seg.bbeg > seg.bend)

    def test_identity_filter_is_copy(self, sample_plot):
        sub = sample_plot.filtered(SequenceFilter(), SequenceFilter.from_names('ctg'))
        assert sub is not sample_plot
        assert segment_multiset(sub) == segment_multiset(sample_plot)
        assert sub.total_length('A') == sample_plot.total_length('A')
        assert sub.total_length('B') == sample_plot.total_length('B')
        # immutable layers are shared rather than rebuilt
        assert sub.layer(0) is sample_plot.layer(0)

    def test_filter_then_filter_equals_combined(self, sample_plot):
        step = sample_plot.filtered(SequenceFilter.from_range('1-1')).filtered(
            target_filter=SequenceFilter.from_names('ctgY')
        )
        once = sample_plot.filtered(
            SequenceFilter.from_range('1-1'), SequenceFilter.from_names('ctgY')
        )
        assert step.sequence_names('A') == once.sequence_names('A') == ['chr2']
        assert step.sequence_names('B') == once.sequence_names('B') == ['ctgY']
        assert segment_multiset(step) == segment_multiset(once)
        assert segment_multiset(once) == Counter([AlignmentSegment(10, 60, 500, 550, False)])

    def test_filtered_plot_queries(self, sample_plot):
        sub = sample_plot.filtered(SequenceFilter.from_names('chr2'))
        assert sub.query_region(0, 0, 700, 100, 200) == [
            AlignmentSegment(10, 60, 800, 850, False)
        ]

    def test_layers_preserved(self):
        layers = [LayerSpec('long', min_length=100), LayerSpec('rest')]
        plot = build_plot(RECORDS, GENOME_A, GENOME_B, layers=layers)
        sub = plot.filtered(SequenceFilter.from_names('chr2'))
        assert sub.layer_names == ['long', 'rest']
        assert sub.segments(0) == [AlignmentSegment(600, 700, 0, 100, False)]
        assert sub.segment_count(1) == 2

    def test_no_match_on_query_axis(self, sample_plot):
        with pytest.raises(NoMatchError) as excinfo:
            sample_plot.filtered(SequenceFilter.from_names('nothing'))
        assert excinfo.value.genome == 'A'
        assert isinstance(excinfo.value, FilterError)

    def test_no_match_on_target_axis(self, sample_plot):
        with pytest.raises(NoMatchError) as excinfo:
            subset_plot(sample_plot, None, SequenceFilter.from_range('10-20'))
        assert excinfo.value.genome == 'B'

    def test_boundary_straddling_segment_dropped(self):
        cat_a = SequenceCatalog.from_entries('A', [('s0', 500), ('s1', 700)])
        cat_b = SequenceCatalog.from_entries('B', [('t0', 100), ('t1', 100)])
        layer = SegmentLayer.from_segments(
            LayerSpec('all'),
            [
                AlignmentSegment(400, 600, 0, 10, False),
                AlignmentSegment(510, 520, 0, 10, False),
                AlignmentSegment(600, 700, 150, 50, True),
            ],
        )
        plot = Plot(cat_a, cat_b, [layer])
        sub = plot.filtered(SequenceFilter.from_names('s1'))
        assert sub.segments(0) == [AlignmentSegment(10, 20, 0, 10, False)]

    def test_point_on_boundary_stays_with_its_sequence(self):
        recs = [
            RawAlignmentRecord(0, 0, 0, 10, 100, 100),
            RawAlignmentRecord(0, 1, 20, 30, 0, 0),
        ]
        plot = build_plot(recs, [('q', 100)], [('t0', 100), ('t1', 100)])
        # both points stitch to y == 100
        assert sorted(s.bbeg for s in plot.segments(0)) == [100, 100]

        only_t1 = plot.filtered(None, SequenceFilter.from_names('t1'))
        assert only_t1.segments(0) == [AlignmentSegment(20, 30, 0, 0, False)]
        only_t0 = plot.filtered(None, SequenceFilter.from_names('t0'))
        assert only_t0.segments(0) == [AlignmentSegment(0, 10, 100, 100, False)]

    def test_source_sequences_renumbered(self, sample_plot):
        sub = sample_plot.filtered(SequenceFilter.from_names('chr2'))
        layer = sub.layer(0)
        assert set(layer.aseq.tolist()) == {0}
        assert sorted(layer.bseq.tolist()) == [0, 1, 2]
