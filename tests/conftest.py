"""Pytest configuration and shared fixtures."""

import pytest

from alnview.plot import build_plot
from tests.test_data import GENOME_A, GENOME_B, RECORDS, SIMPLE_PAF


@pytest.fixture
def sample_plot():
    """Plot built from the shared two-by-three sequence records."""
    return build_plot(RECORDS, GENOME_A, GENOME_B)


@pytest.fixture
def paf_file(tmp_path):
    """Write a small PAF file and return its path."""
    path = tmp_path / 'simple.paf'
    path.write_text(SIMPLE_PAF)
    return str(path)
