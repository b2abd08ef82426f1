"""Map per-sequence alignment records into genome-wide coordinates."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
import logging
from typing import Optional, Sequence

from alnview.errors import AlnViewError, OutOfRangeError
from alnview.offsets import ScaffoldOffsetTable
from alnview.records import AlignmentSegment, RawAlignmentRecord

_log = logging.getLogger(__name__)

#: Records handed to each worker when stitching in parallel.
DEFAULT_CHUNK_SIZE = 50_000


class CoordinateStitcher:
    """Stitch raw records onto the concatenated genome axes.

    The stitcher only reads its offset tables, so a single instance can be
    shared between worker threads.

    Parameters
    ----------
    offsets_a : ScaffoldOffsetTable
        Finalised offsets for genome A (query, x axis).
    offsets_b : ScaffoldOffsetTable
        Finalised offsets for genome B (target, y axis).

    Examples
    --------
    >>> stitcher = CoordinateStitcher(
    ...     ScaffoldOffsetTable([1000]), ScaffoldOffsetTable([1000])
    ... )
    >>> stitcher.stitch(RawAlignmentRecord(0, 0, 100, 200, 300, 400, reverse=True))
    AlignmentSegment(abeg=100, aend=200, bbeg=700, bend=600, reverse=True)
    """

    def __init__(self, offsets_a: ScaffoldOffsetTable, offsets_b: ScaffoldOffsetTable) -> None:
        self.offsets_a = offsets_a
        self.offsets_b = offsets_b

    def stitch(self, rec: RawAlignmentRecord) -> AlignmentSegment:
        """Return the genome-wide segment for one record.

        For a reverse-complement record the target interval is mirrored
        about the end of its sequence, so the segment runs backwards on the
        B axis (``bbeg > bend``).

        Parameters
        ----------
        rec : RawAlignmentRecord
            Record with coordinates local to its sequences.

        Returns
        -------
        AlignmentSegment

        Raises
        ------
        InvalidRecordError
            If the record has negative or inverted coordinates.
        OutOfRangeError
            If either sequence id is not covered by the offset tables.
        """
        rec.validate()
        if rec.query_id >= len(self.offsets_a):
            raise OutOfRangeError(
                f'query_id {rec.query_id} out of range ({len(self.offsets_a)} sequences)'
            )
        if rec.target_id >= len(self.offsets_b):
            raise OutOfRangeError(
                f'target_id {rec.target_id} out of range ({len(self.offsets_b)} sequences)'
            )

        a_off = self.offsets_a.offset(rec.query_id)
        if rec.reverse:
            end_pos = self.offsets_b.end(rec.target_id)
            bbeg = end_pos - rec.target_start
            bend = end_pos - rec.target_end
        else:
            b_off = self.offsets_b.offset(rec.target_id)
            bbeg = b_off + rec.target_start
            bend = b_off + rec.target_end

        return AlignmentSegment(
            abeg=a_off + rec.query_start,
            aend=a_off + rec.query_end,
            bbeg=bbeg,
            bend=bend,
            reverse=bbeg > bend,
        )

    def _stitch_chunk(
        self, records: Sequence[RawAlignmentRecord], start: int, stop: int
    ) -> tuple[list[tuple[int, AlignmentSegment]], list[tuple[int, AlnViewError]]]:
        done: list[tuple[int, AlignmentSegment]] = []
        failed: list[tuple[int, AlnViewError]] = []
        for pos in range(start, stop):
            try:
                done.append((pos, self.stitch(records[pos])))
            except AlnViewError as exc:
                failed.append((pos, exc))
        return done, failed

    def stitch_all(
        self,
        records: Sequence[RawAlignmentRecord],
        workers: Optional[int] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> tuple[list[tuple[int, AlignmentSegment]], list[tuple[int, AlnViewError]]]:
        """Stitch every record, dropping (not clamping) malformed ones.

        Parameters
        ----------
        records : sequence of RawAlignmentRecord
            Records to stitch.
        workers : int or None, optional
            Number of worker threads.  ``None`` or ``1`` (default) stitches
            on the calling thread.
        chunk_size : int, optional
            Records per worker task.  Default is :data:`DEFAULT_CHUNK_SIZE`.

        Returns
        -------
        tuple of (list, list)
            ``(stitched, failed)`` where *stitched* holds
            ``(record_position, segment)`` pairs and *failed* holds
            ``(record_position, error)`` pairs.  When stitching in parallel the
            order of both lists is unspecified.
        """
        n = len(records)
        if not workers or workers <= 1 or n <= chunk_size:
            return self._stitch_chunk(records, 0, n)

        stitched: list[tuple[int, AlignmentSegment]] = []
        failed: list[tuple[int, AlnViewError]] = []
        _log.debug('Stitching %d records with %d workers', n, workers)
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(self._stitch_chunk, records, lo, min(lo + chunk_size, n))
                for lo in range(0, n, chunk_size)
            ]
            for fut in as_completed(futures):
                done, bad = fut.result()
                stitched.extend(done)
                failed.extend(bad)
        return stitched, failed
