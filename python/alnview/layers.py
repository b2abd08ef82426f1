"""Threshold layers that partition a plot's segments."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from alnview.records import RawAlignmentRecord


@dataclass(frozen=True)
class LayerSpec:
    """Selection thresholds for one layer.

    Parameters
    ----------
    name : str
        Display name of the layer.
    min_length : int, optional
        Minimum query-aligned length (inclusive).  Default is ``0``.
    min_identity : float, optional
        Minimum percent identity (inclusive, 0-100).  Default is ``0.0``.
    """

    name: str
    min_length: int = 0
    min_identity: float = 0.0

    def accepts(self, rec: RawAlignmentRecord) -> bool:
        """Return ``True`` if *rec* meets both thresholds."""
        return rec.query_aligned_len >= self.min_length and rec.identity >= self.min_identity


DEFAULT_LAYERS: tuple[LayerSpec, ...] = (LayerSpec('all'),)


def normalise_layers(layers: Iterable[LayerSpec] | None) -> tuple[LayerSpec, ...]:
    """Return *layers* as a tuple, falling back to :data:`DEFAULT_LAYERS`.

    Raises
    ------
    ValueError
        If two layers share a name.
    """
    if layers is None:
        return DEFAULT_LAYERS
    specs = tuple(layers)
    if not specs:
        return DEFAULT_LAYERS
    names = [s.name for s in specs]
    if len(set(names)) != len(names):
        raise ValueError(f'Layer names must be unique, got {names}')
    return specs


def assign_layer(rec: RawAlignmentRecord, layers: Sequence[LayerSpec]) -> int:
    """Return the index of the first layer accepting *rec*, or ``-1``."""
    for i, spec in enumerate(layers):
        if spec.accepts(rec):
            return i
    return -1
