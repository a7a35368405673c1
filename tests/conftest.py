"""Pytest configuration and fixtures for vcf-refalt-fixer tests."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from fixtures.vcf_generator import (  # noqa: E402
    EXAMPLE_BASES,
    VCFGenerator,
    make_example_variants,
    make_sequence,
    write_fasta,
)


@pytest.fixture
def reference_fasta(tmp_path) -> Path:
    """Reference with Chr-prefixed names and the worked-example bases on Chr1."""
    return write_fasta(
        tmp_path / "reference.fa",
        {
            "Chr1": make_sequence(500, EXAMPLE_BASES),
            "Chr2": make_sequence(500, {50: "C"}),
        },
    )


@pytest.fixture
def example_vcf(tmp_path) -> Path:
    """Gzipped TASSEL-style VCF with bare contig ids and the worked examples."""
    return VCFGenerator.generate_file(tmp_path / "tassel.vcf.gz", make_example_variants())


@pytest.fixture
def in_tmp_cwd(tmp_path, monkeypatch) -> Path:
    """Run the test from an empty working directory."""
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    return workdir


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests that bgzip and index real files (needs pysam)"
    )
