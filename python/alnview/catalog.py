"""Per-genome sequence catalogs.

A :class:`SequenceCatalog` is the ordered list of sequences (scaffolds or
contigs) making up one genome.  Readers do not always store names or
lengths, so catalogs are usually assembled with a :class:`CatalogBuilder`
that grows as alignment records are scanned and infers each unknown length
from the largest end coordinate seen on that sequence.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Iterable, Iterator, Optional, Union

from alnview.errors import OutOfRangeError
from alnview.offsets import ScaffoldOffsetTable
from alnview.records import Genome

_log = logging.getLogger(__name__)

#: A catalog entry as supplied by a reader: a bare name or ``(name, length)``.
NameEntry = Union[str, tuple[str, Optional[int]]]


@dataclass(frozen=True)
class Sequence:
    """One sequence of a genome assembly.

    Parameters
    ----------
    index : int
        Position of the sequence in its catalog.
    name : str
        Sequence name.
    length : int
        Length in base pairs.
    """

    index: int
    name: str
    length: int


def placeholder_name(genome: Genome, index: int) -> str:
    """Return the synthesised name for an unnamed sequence, e.g. ``'query_3'``."""
    return f'{genome.placeholder_prefix}_{index}'


class SequenceCatalog:
    """Immutable ordered list of :class:`Sequence` objects for one genome.

    Parameters
    ----------
    genome : Genome
        The axis this catalog describes.
    sequences : iterable of Sequence
        Sequences in axis order.  Their ``index`` fields must run
        ``0..n-1``.
    """

    def __init__(self, genome: Genome, sequences: Iterable[Sequence]) -> None:
        self.genome = Genome.coerce(genome)
        self._sequences: tuple[Sequence, ...] = tuple(sequences)
        for i, seq in enumerate(self._sequences):
            if seq.index != i:
                raise ValueError(f'Sequence {seq.name!r} has index {seq.index}, expected {i}')
        self._offsets = ScaffoldOffsetTable(s.length for s in self._sequences)

    @classmethod
    def from_entries(
        cls, genome: Genome | str, entries: Iterable[NameEntry]
    ) -> 'SequenceCatalog':
        """Build a catalog from ``(name, length)`` pairs.

        A missing length is taken as ``0``.
        """
        genome = Genome.coerce(genome)
        seqs = []
        for i, entry in enumerate(entries):
            name, length = _split_entry(entry)
            seqs.append(Sequence(i, name or placeholder_name(genome, i), length or 0))
        return cls(genome, seqs)

    # ------------------------------------------------------------------
    # Container protocol
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._sequences)

    def __iter__(self) -> Iterator[Sequence]:
        return iter(self._sequences)

    def __getitem__(self, index: int) -> Sequence:
        if index < 0 or index >= len(self._sequences):
            raise OutOfRangeError(
                f'Sequence index {index} out of range for genome {self.genome.value} '
                f'({len(self._sequences)} sequences)'
            )
        return self._sequences[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SequenceCatalog):
            return NotImplemented
        return self.genome is other.genome and self._sequences == other._sequences

    def __hash__(self) -> int:
        return hash((self.genome, self._sequences))

    def __repr__(self) -> str:
        return (
            f'SequenceCatalog(genome={self.genome.value}, sequences={len(self)}, '
            f'total={self.total_length})'
        )

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    @property
    def names(self) -> list[str]:
        """Sequence names in axis order."""
        return [s.name for s in self._sequences]

    @property
    def lengths(self) -> list[int]:
        """Sequence lengths in axis order."""
        return [s.length for s in self._sequences]

    @property
    def total_length(self) -> int:
        return sum(s.length for s in self._sequences)

    @property
    def offsets(self) -> ScaffoldOffsetTable:
        """The :class:`ScaffoldOffsetTable` built from this catalog's lengths."""
        return self._offsets

    def index_of(self, name: str) -> int:
        """Return the index of the first sequence called *name*.

        Raises
        ------
        KeyError
            If no sequence has that name.
        """
        for seq in self._sequences:
            if seq.name == name:
                return seq.index
        raise KeyError(name)

    def subset(self, indices: Iterable[int]) -> 'SequenceCatalog':
        """Return a new catalog holding only *indices*, renumbered from zero.

        Parameters
        ----------
        indices : iterable of int
            Retained indices, in the order they should appear.
        """
        return SequenceCatalog(
            self.genome,
            (
                Sequence(new_i, self[old_i].name, self[old_i].length)
                for new_i, old_i in enumerate(indices)
            ),
        )


def _split_entry(entry: NameEntry) -> tuple[str, Optional[int]]:
    if isinstance(entry, str):
        return entry, None
    name, length = entry
    if length is not None and length < 0:
        raise ValueError(f'Negative length {length} for sequence {name!r}')
    return name, length


class CatalogBuilder:
    """Accumulate sequence lengths for one genome while records are scanned.

    Lengths supplied by the reader are authoritative.  Sequences without
    one start at ``0`` and grow to the largest end coordinate observed.
    Unless *strict* is set, a record referencing an index past the end of
    the supplied names grows the catalog with placeholder names.

    Parameters
    ----------
    genome : Genome or str
        Axis being built.
    entries : iterable of str or (str, int or None), optional
        Reader metadata in axis order.  May be empty.
    strict : bool, optional
        Reject indices beyond *entries* instead of synthesising
        placeholders.  Default is ``False``.
    """

    def __init__(
        self,
        genome: Genome | str,
        entries: Iterable[NameEntry] = (),
        strict: bool = False,
    ) -> None:
        self.genome = Genome.coerce(genome)
        self.strict = strict
        self._names: list[Optional[str]] = []
        self._declared: list[Optional[int]] = []
        self._observed: list[int] = []
        for entry in entries:
            name, length = _split_entry(entry)
            self._names.append(name or None)
            self._declared.append(length)
            self._observed.append(0)
        self._n_declared = len(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def check(self, index: int, end: int) -> None:
        """Raise :class:`OutOfRangeError` if ``(index, end)`` cannot be recorded."""
        if index >= len(self._names):
            if self.strict:
                raise OutOfRangeError(
                    f'Sequence index {index} not in genome {self.genome.value} catalog '
                    f'({self._n_declared} sequences)'
                )
            return
        declared = self._declared[index]
        if declared is not None and end > declared:
            raise OutOfRangeError(
                f'End {end} exceeds length {declared} of sequence {index} '
                f'on genome {self.genome.value}'
            )

    def observe(self, index: int, end: int) -> None:
        """Record that sequence *index* extends at least to *end*.

        Call :meth:`check` first; this method does not validate.
        """
        if index >= len(self._names):
            grow = index + 1 - len(self._names)
            self._names.extend([None] * grow)
            self._declared.extend([None] * grow)
            self._observed.extend([0] * grow)
        if end > self._observed[index]:
            self._observed[index] = end

    def build(self) -> SequenceCatalog:
        """Freeze the accumulated lengths into a :class:`SequenceCatalog`."""
        n_synth = 0
        seqs = []
        for i, (name, declared, observed) in enumerate(
            zip(self._names, self._declared, self._observed)
        ):
            if name is None:
                name = placeholder_name(self.genome, i)
                n_synth += 1
            length = declared if declared is not None else observed
            seqs.append(Sequence(i, name, length))
        if n_synth:
            _log.debug(
                'Synthesised %d placeholder name(s) for genome %s',
                n_synth,
                self.genome.value,
            )
        return SequenceCatalog(self.genome, seqs)
