"""Exception types raised while building and filtering plots."""

from __future__ import annotations


class AlnViewError(Exception):
    """Base class for all alnview errors."""


class InvalidRecordError(AlnViewError, ValueError):
    """A raw alignment record has negative or nonsensical ids/coordinates."""


class OutOfRangeError(AlnViewError, IndexError):
    """A record references a sequence (or position) the catalog does not cover."""


class BuildError(AlnViewError):
    """Plot construction failed because the input produced no usable data."""


class FilterError(AlnViewError):
    """A sequence filter could not produce a valid derived plot."""


class NoMatchError(FilterError):
    """A sequence filter retained zero sequences on one axis.

    Parameters
    ----------
    genome : str
        Axis label (``'A'`` or ``'B'``) on which nothing matched.
    """

    def __init__(self, genome: str) -> None:
        self.genome = genome
        super().__init__(f'Filter retained no sequences on genome {genome}')
