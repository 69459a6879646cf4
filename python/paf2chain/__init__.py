"""
paf2chain: convert PAF pairwise alignments into UCSC chain files.

This package provides:
- PAF file I/O with CIGAR (``cg:Z:``) edit scripts, plain or gzipped
- Edit-script trimming and chain block decomposition
- Query/target sequence catalogs laying every sequence on one shared axis
- Whole-genome dotplots drawn from the same alignments

Examples
--------
Basic usage:

>>> from paf2chain import paf_to_chain
>>> n_chains = paf_to_chain("alignments.paf", "alignments.chain")
"""

__version__ = '0.1.1'

from paf2chain.catalog import (  # noqa: F401, E402
    AlignedSequence,
    SequenceCatalog,
    build_catalogs,
)
from paf2chain.chain import (  # noqa: F401, E402
    Chain,
    ChainIdCounter,
    UngappedMatch,
    iter_chains,
    iter_ungapped_matches,
    paf_to_chain,
    record_to_chains,
)
from paf2chain.paf_io import PafRecord, parse_paf_file  # noqa: F401, E402

__all__ = [
    'AlignedSequence',
    'SequenceCatalog',
    'build_catalogs',
    'Chain',
    'ChainIdCounter',
    'UngappedMatch',
    'iter_chains',
    'iter_ungapped_matches',
    'paf_to_chain',
    'record_to_chains',
    'PafRecord',
    'parse_paf_file',
]
