"""PAF (Pairwise mApping Format) input for building plots.

The native alignment reader is an external component; PAF text is
supported as a convenient upstream for scripting and tests.

This module provides:
- :class:`PafRecord` — a dataclass representing one PAF alignment line.
- :func:`parse_paf_file` — a generator that yields :class:`PafRecord` objects.
- :class:`PafAlignment` — a container that numbers query and target
  sequences in first-seen order and converts its records into
  :class:`~alnview.records.RawAlignmentRecord` input for
  :func:`~alnview.plot.build_plot`.

Edit differences
----------------
Identity layering needs a per-record difference count.  It is taken from,
in order of preference: the ``cg:Z:`` CIGAR tag (``X`` + ``I`` + ``D``
bases), the ``NM:i:`` tag, or ``alignment_block_len - residue_matches``.

Examples
--------
>>> from alnview.paf_io import PafAlignment
>>> aln = PafAlignment.from_file("matches.paf")
>>> plot = aln.build_plot()
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
import re
from typing import Any, Generator

from alnview.plot import Plot, build_plot
from alnview.records import RawAlignmentRecord

_log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# CIGAR parsing
# ---------------------------------------------------------------------------

_CIGAR_RE = re.compile(r'(\d+)([MIDNSHP=X])')


def _parse_cigar(cigar: str) -> dict[str, int]:
    """Return total bases per CIGAR operation, e.g. ``{'=': 18, 'X': 2}``."""
    counts: dict[str, int] = {}
    for length_str, op in _CIGAR_RE.findall(cigar):
        counts[op] = counts.get(op, 0) + int(length_str)
    return counts


def _cigar_diffs(cigar: str) -> int:
    ops = _parse_cigar(cigar)
    return ops.get('X', 0) + ops.get('I', 0) + ops.get('D', 0)


# ---------------------------------------------------------------------------
# PafRecord dataclass
# ---------------------------------------------------------------------------


@dataclass
class PafRecord:
    """A single PAF alignment record.

    The twelve required PAF columns are represented as typed attributes.
    Optional SAM-like tags (e.g. ``tp:A:P``, ``NM:i:3``) are stored in
    :attr:`tags`; a ``cg:Z:`` CIGAR string is also kept in :attr:`cigar`.

    Parameters
    ----------
    query_name : str
        Query sequence name (column 1).
    query_len : int
        Query sequence length (column 2).
    query_start : int
        Query start position, 0-based (column 3).
    query_end : int
        Query end position, exclusive (column 4).
    strand : str
        Relative strand: ``"+"`` or ``"-"`` (column 5).
    target_name : str
        Target sequence name (column 6).
    target_len : int
        Target sequence length (column 7).
    target_start : int
        Target start position on the forward strand, 0-based (column 8).
    target_end : int
        Target end position, exclusive (column 9).
    residue_matches : int
        Number of residue matches (column 10).
    alignment_block_len : int
        Number of bases in the alignment block (column 11).
    mapping_quality : int
        Mapping quality (0-255; 255 = missing) (column 12).
    tags : dict[str, Any]
        Optional SAM-like tags decoded as ``{tag_name: value}``.
    cigar : str or None
        CIGAR string from the ``cg:Z:`` tag, or ``None`` if absent.
    """

    query_name: str
    query_len: int
    query_start: int
    query_end: int
    strand: str
    target_name: str
    target_len: int
    target_start: int
    target_end: int
    residue_matches: int
    alignment_block_len: int
    mapping_quality: int
    tags: dict[str, Any] = field(default_factory=dict)
    cigar: str | None = None

    @property
    def is_reverse(self) -> bool:
        return self.strand == '-'

    @property
    def diffs(self) -> int:
        """Edit differences for identity layering (never negative)."""
        if self.cigar is not None:
            return _cigar_diffs(self.cigar)
        nm = self.tags.get('NM')
        if isinstance(nm, int):
            return nm
        return max(self.alignment_block_len - self.residue_matches, 0)

    @classmethod
    def from_line(cls, line: str) -> 'PafRecord':
        """Parse a single PAF text line into a :class:`PafRecord`.

        Parameters
        ----------
        line : str
            A single PAF record line (tab-separated, trailing newline optional).

        Returns
        -------
        PafRecord
            The parsed record.

        Raises
        ------
        ValueError
            If the line has fewer than 12 tab-separated fields, a numeric
            column does not parse, or the strand is not ``+`` / ``-``.
        """
        fields = line.rstrip('\n').split('\t')
        if len(fields) < 12:
            raise ValueError(
                f'PAF line has {len(fields)} fields; expected at least 12: {line!r}'
            )
        if fields[4] not in ('+', '-'):
            raise ValueError(f'PAF strand must be "+" or "-", got {fields[4]!r}')
        tags: dict[str, Any] = {}
        cigar: str | None = None
        for tag_field in fields[12:]:
            parts = tag_field.split(':', 2)
            if len(parts) == 3:
                tag_name, tag_type, tag_value = parts
                if tag_type == 'i':
                    tags[tag_name] = int(tag_value)
                elif tag_type == 'f':
                    tags[tag_name] = float(tag_value)
                else:
                    tags[tag_name] = tag_value
                if tag_name == 'cg' and tag_type == 'Z':
                    cigar = tag_value

        return cls(
            query_name=fields[0],
            query_len=int(fields[1]),
            query_start=int(fields[2]),
            query_end=int(fields[3]),
            strand=fields[4],
            target_name=fields[5],
            target_len=int(fields[6]),
            target_start=int(fields[7]),
            target_end=int(fields[8]),
            residue_matches=int(fields[9]),
            alignment_block_len=int(fields[10]),
            mapping_quality=int(fields[11]),
            tags=tags,
            cigar=cigar,
        )


# ---------------------------------------------------------------------------
# Generator helper
# ---------------------------------------------------------------------------


def parse_paf_file(path: str | Path) -> Generator[PafRecord, None, None]:
    """Yield :class:`PafRecord` objects from a PAF file.

    Lines beginning with ``#`` are treated as comments and skipped.  Empty
    lines are also skipped.

    Parameters
    ----------
    path : str or Path
        Path to the PAF file.

    Yields
    ------
    PafRecord
        One record per non-comment, non-empty line.

    Raises
    ------
    FileNotFoundError
        If ``path`` does not exist.
    ValueError
        If a line cannot be parsed as a PAF record.
    """
    path = Path(path)
    with path.open('r', encoding='utf-8') as fh:
        for line in fh:
            line = line.rstrip('\n')
            if not line or line.startswith('#'):
                continue
            yield PafRecord.from_line(line)


# ---------------------------------------------------------------------------
# PafAlignment class
# ---------------------------------------------------------------------------


class PafAlignment:
    """A collection of PAF records ready to be turned into a plot.

    Query sequences form genome A and target sequences genome B, each
    numbered in the order first seen.  Sequence lengths come from the PAF
    length columns.

    Parameters
    ----------
    records : list of PafRecord
        The alignment records.

    Examples
    --------
    >>> aln = PafAlignment.from_file("alignments.paf")
    >>> records, a_names, b_names = aln.to_build_inputs()
    """

    def __init__(self, records: list[PafRecord]) -> None:
        self.records: list[PafRecord] = records

    @classmethod
    def from_file(cls, path: str | Path) -> 'PafAlignment':
        """Load every record of a PAF file."""
        return cls(list(parse_paf_file(path)))

    @property
    def query_names(self) -> list[str]:
        """Unique query names in the order first seen."""
        seen: dict[str, None] = {}
        for rec in self.records:
            seen[rec.query_name] = None
        return list(seen)

    @property
    def target_names(self) -> list[str]:
        """Unique target names in the order first seen."""
        seen: dict[str, None] = {}
        for rec in self.records:
            seen[rec.target_name] = None
        return list(seen)

    def __len__(self) -> int:
        return len(self.records)

    def __repr__(self) -> str:
        return (
            f'PafAlignment(records={len(self.records)}, '
            f'queries={len(self.query_names)}, '
            f'targets={len(self.target_names)})'
        )

    def to_build_inputs(
        self,
    ) -> tuple[list[RawAlignmentRecord], list[tuple[str, int]], list[tuple[str, int]]]:
        """Convert to :func:`~alnview.plot.build_plot` arguments.

        Returns
        -------
        tuple
            ``(records, genome_a_names, genome_b_names)`` where the name
            lists hold ``(name, length)`` pairs.  If a sequence is reported
            with different lengths, the largest is used and a warning is
            logged.
        """
        q_index: dict[str, int] = {}
        t_index: dict[str, int] = {}
        q_len: dict[str, int] = {}
        t_len: dict[str, int] = {}
        raw: list[RawAlignmentRecord] = []
        for rec in self.records:
            qi = q_index.setdefault(rec.query_name, len(q_index))
            ti = t_index.setdefault(rec.target_name, len(t_index))
            for name, length, lens in (
                (rec.query_name, rec.query_len, q_len),
                (rec.target_name, rec.target_len, t_len),
            ):
                prev = lens.get(name)
                if prev is not None and prev != length:
                    _log.warning(
                        'Sequence %r reported with lengths %d and %d; using the larger',
                        name,
                        prev,
                        length,
                    )
                lens[name] = max(prev or 0, length)
            raw.append(
                RawAlignmentRecord(
                    query_id=qi,
                    target_id=ti,
                    query_start=rec.query_start,
                    query_end=rec.query_end,
                    target_start=rec.target_start,
                    target_end=rec.target_end,
                    reverse=rec.is_reverse,
                    diffs=rec.diffs,
                )
            )
        a_names = [(name, q_len[name]) for name in q_index]
        b_names = [(name, t_len[name]) for name in t_index]
        return raw, a_names, b_names

    def build_plot(self, **kwargs: Any) -> Plot:
        """Build a :class:`~alnview.plot.Plot`; keyword arguments go to
        :func:`~alnview.plot.build_plot`."""
        raw, a_names, b_names = self.to_build_inputs()
        _log.info(
            'Building plot from %d PAF records (%d queries, %d targets)',
            len(raw),
            len(a_names),
            len(b_names),
        )
        return build_plot(raw, a_names, b_names, **kwargs)
