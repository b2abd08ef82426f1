"""Tests for the PAF input adapter and CIGAR-derived differences."""

from pathlib import Path

import pytest

from alnview.paf_io import PafAlignment, PafRecord, parse_paf_file
from alnview.records import AlignmentSegment, RawAlignmentRecord
from tests.test_data import CIGAR_PAF, SIMPLE_PAF

# ---------------------------------------------------------------------------
# PafRecord.from_line
# ---------------------------------------------------------------------------


class TestPafRecordFromLine:
    def test_basic_parse(self):
        line = 'query1\t100\t0\t50\t+\ttarget1\t200\t10\t60\t45\t50\t255'
        rec = PafRecord.from_line(line)
        assert rec.query_name == 'query1'
        assert rec.query_len == 100
        assert rec.query_start == 0
        assert rec.query_end == 50
        assert rec.strand == '+'
        assert rec.target_name == 'target1'
        assert rec.target_len == 200
        assert rec.target_start == 10
        assert rec.target_end == 60
        assert rec.residue_matches == 45
        assert rec.alignment_block_len == 50
        assert rec.mapping_quality == 255
        assert not rec.is_reverse

    def test_minus_strand(self):
        rec = PafRecord.from_line('q\t80\t0\t40\t-\tt\t200\t150\t190\t38\t40\t255')
        assert rec.is_reverse

    def test_bad_strand_raises(self):
        with pytest.raises(ValueError):
            PafRecord.from_line('q\t80\t0\t40\t*\tt\t200\t150\t190\t38\t40\t255')

    def test_optional_tags_parsed(self):
        rec = PafRecord.from_line('q\t100\t0\t50\t+\tt\t200\t0\t50\t45\t50\t60\ttp:A:P\tNM:i:3')
        assert rec.tags.get('tp') == 'P'
        assert rec.tags.get('NM') == 3

    def test_too_few_fields_raises(self):
        with pytest.raises(ValueError):
            PafRecord.from_line('q\t100\t0\t50\t+\tt')


class TestDiffs:
    def test_diffs_from_block_and_matches(self):
        rec = PafRecord.from_line('q\t100\t0\t50\t+\tt\t200\t0\t50\t45\t50\t255')
        assert rec.cigar is None
        assert rec.diffs == 5

    def test_diffs_from_nm_tag(self):
        rec = PafRecord.from_line('q\t100\t0\t50\t+\tt\t200\t0\t50\t45\t50\t60\tNM:i:3')
        assert rec.diffs == 3

    def test_diffs_from_cigar_mismatches(self):
        rec = PafRecord.from_line('q\t100\t0\t20\t+\tt\t200\t0\t22\t18\t22\t60\tcg:Z:18=2X')
        assert rec.cigar == '18=2X'
        assert rec.diffs == 2

    def test_diffs_from_cigar_indels(self):
        # 2 inserted + 4 deleted bases
        rec = PafRecord.from_line('q\t50\t0\t15\t+\tt\t100\t5\t20\t12\t15\t60\tcg:Z:3=2I3=4D3=')
        assert rec.diffs == 6


# ---------------------------------------------------------------------------
# parse_paf_file
# ---------------------------------------------------------------------------


class TestParsePafFile:
    def test_yields_correct_count(self, paf_file):
        assert len(list(parse_paf_file(paf_file))) == 3

    def test_skips_comments_and_blank_lines(self, tmp_path):
        path = tmp_path / 'c.paf'
        path.write_text('# header\n\nquery1\t100\t0\t50\t+\ttarget1\t200\t10\t60\t45\t50\t255\n')
        assert len(list(parse_paf_file(path))) == 1

    def test_file_not_found(self):
        with pytest.raises(FileNotFoundError):
            list(parse_paf_file('/nonexistent/path.paf'))

    def test_cigar_parsed_from_file(self, tmp_path):
        path = tmp_path / 'cigar.paf'
        path.write_text(CIGAR_PAF)
        records = list(parse_paf_file(path))
        assert records[0].cigar == '18=2X'
        assert records[1].cigar == '3=2I3=4D3='


# ---------------------------------------------------------------------------
# PafAlignment
# ---------------------------------------------------------------------------


class TestPafAlignment:
    def setup_method(self):
        self.records = [PafRecord.from_line(line) for line in SIMPLE_PAF.splitlines()]
        self.aln = PafAlignment(self.records)

    def test_len_and_names(self):
        assert len(self.aln) == 3
        assert self.aln.query_names == ['query1', 'query2']
        assert self.aln.target_names == ['target1']

    def test_repr(self):
        assert repr(self.aln) == 'PafAlignment(records=3, queries=2, targets=1)'

    def test_from_file(self, paf_file):
        assert len(PafAlignment.from_file(Path(paf_file))) == 3

    def test_to_build_inputs(self):
        raw, a_names, b_names = self.aln.to_build_inputs()
        assert a_names == [('query1', 100), ('query2', 80)]
        assert b_names == [('target1', 200)]
        assert raw[2] == RawAlignmentRecord(1, 0, 0, 40, 150, 190, reverse=True, diffs=2)

    def test_inconsistent_lengths_use_larger(self, caplog):
        aln = PafAlignment(
            [
                PafRecord.from_line('q\t100\t0\t50\t+\tt\t200\t0\t50\t50\t50\t255'),
                PafRecord.from_line('q\t120\t0\t50\t+\tt\t200\t0\t50\t50\t50\t255'),
            ]
        )
        _, a_names, _ = aln.to_build_inputs()
        assert a_names == [('q', 120)]
        assert 'lengths 100 and 120' in caplog.text

    def test_build_plot(self):
        plot = self.aln.build_plot()
        assert plot.scaffold_boundaries('A') == [0, 100, 180]
        assert plot.scaffold_boundaries('B') == [0, 200]
        assert plot.n_skipped == 0
        # query2 reverse: a = 100..140, b mirrored about 200
        assert AlignmentSegment(100, 140, 50, 10, True) in plot.segments(0)
