"""Pytest configuration and shared fixtures."""

import gzip
import os
import textwrap

import pytest

# Ensure a non-interactive backend is used for tests running in headless
# environments (e.g. CI).  This must be set before pyplot is imported.
os.environ.setdefault('MPLBACKEND', 'Agg')

# Two queries on one target; the second record is reverse strand and the
# third has no cg:Z: tag, so its edit script is synthesized.
PAF_CONTENT = textwrap.dedent("""\
    q1\t100\t10\t90\t+\tt1\t200\t20\t105\t75\t85\t60\tcg:Z:10M5D70M
    q2\t50\t0\t30\t-\tt1\t200\t120\t150\t30\t30\t60\ttp:A:P\tcg:Z:30M
    q1\t100\t0\t10\t+\tt1\t200\t180\t190\t10\t10\t60
""")

EXPECTED_CHAIN = (
    'chain\t255\tt1\t200\t+\t20\t105\tq1\t100\t+\t10\t90\t0\n'
    '10\t5\t0\n'
    '70\n'
    '\n'
    'chain\t255\tt1\t200\t+\t120\t150\tq2\t50\t-\t20\t50\t1\n'
    '30\n'
    '\n'
    'chain\t255\tt1\t200\t+\t180\t190\tq1\t100\t+\t0\t10\t2\n'
    '10\n'
    '\n'
)


@pytest.fixture
def paf_file(tmp_path):
    """Write a plain PAF file and return its path."""
    path = tmp_path / 'test.paf'
    path.write_text(PAF_CONTENT)
    return str(path)


@pytest.fixture
def gzip_paf_file(tmp_path):
    """Write a gzipped PAF file and return its path."""
    path = tmp_path / 'test.paf.gz'
    with gzip.open(str(path), 'wt') as f:
        f.write(PAF_CONTENT)
    return str(path)


@pytest.fixture
def expected_chain():
    """Chain text expected for :data:`PAF_CONTENT`."""
    return EXPECTED_CHAIN
