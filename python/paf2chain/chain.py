"""Convert PAF alignment records into UCSC chain blocks.

Each PAF record (more precisely, each edit script it carries) becomes one
chain::

    chain <score> <tName> <tSize> + <tStart> <tEnd> <qName> <qSize> <qStrand> <qStart> <qEnd> <id>
    <size> <dt> <dq>
    ...
    <size>
    <blank line>

Fields on a line are tab-separated.

Leading and trailing indels are trimmed off the edit script first, since a
chain has to start and end with aligned columns; the chain's coordinates
shrink by the trimmed lengths.  On the reverse strand, query coordinates are
given relative to the reverse-complemented query, as the chain format
requires.

Records whose edit script has no aligned column are skipped.  Chain ids are
handed out by a :class:`ChainIdCounter` and only consumed by chains that are
actually emitted, so ids in one output stream are contiguous from 0.

The same edit-script walk also drives :func:`iter_ungapped_matches`, which
places every ungapped match on the shared axes of a pair of
:class:`~paf2chain.catalog.SequenceCatalog` objects for plotting.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from contextlib import nullcontext
from dataclasses import dataclass, field
import logging
from pathlib import Path
import sys
from typing import TYPE_CHECKING, NamedTuple, TextIO

from paf2chain.cigar import (
    DELETION_OP,
    INSERTION_OP,
    MATCH_OPS,
    parse_cigar,
    synthesize_cigar,
    trim_cigar,
    walk_blocks,
)
from paf2chain.paf_io import PafRecord, parse_paf_file

if TYPE_CHECKING:
    from paf2chain.catalog import SequenceCatalog

_log = logging.getLogger(__name__)

#: Score written on every chain header.
CHAIN_SCORE = 255

#: Suffix appended to the input path when no output path is given.
CHAIN_SUFFIX = '.chain'


# ---------------------------------------------------------------------------
# Chain model
# ---------------------------------------------------------------------------


class ChainIdCounter:
    """Sequential chain id source for one output stream.

    Parameters
    ----------
    start : int, optional
        First id handed out.  Default is ``0``.
    """

    def __init__(self, start: int = 0) -> None:
        self._next = start

    def next(self) -> int:
        """Return the next id and advance the counter."""
        value = self._next
        self._next += 1
        return value

    @property
    def issued(self) -> int:
        """Value the next call to :meth:`next` will return."""
        return self._next


@dataclass
class Chain:
    """A single chain: header fields plus its alignment blocks.

    Parameters
    ----------
    chain_id : int
        Sequential id within the output stream.
    target_name, target_size, target_start, target_end
        Target sequence and aligned interval (forward strand).
    query_name, query_size, query_strand, query_start, query_end
        Query sequence, strand and aligned interval.  On the ``-`` strand
        the interval is on the reverse-complemented query.
    blocks : list of (int, int, int)
        ``(ungapped_size, target_gap, query_gap)`` for every block that is
        followed by a gap.
    final_size : int
        Size of the last ungapped block.
    score : int, optional
        Chain score.  Default is :data:`CHAIN_SCORE`.
    target_strand : str, optional
        Always ``'+'`` for PAF input.
    """

    chain_id: int
    target_name: str
    target_size: int
    target_start: int
    target_end: int
    query_name: str
    query_size: int
    query_strand: str
    query_start: int
    query_end: int
    blocks: list[tuple[int, int, int]] = field(default_factory=list)
    final_size: int = 0
    score: int = CHAIN_SCORE
    target_strand: str = '+'

    @property
    def target_span(self) -> int:
        """Target bases covered by the blocks and target gaps."""
        return (
            sum(size + dt for size, dt, _ in self.blocks) + self.final_size
        )

    @property
    def query_span(self) -> int:
        """Query bases covered by the blocks and query gaps."""
        return (
            sum(size + dq for size, _, dq in self.blocks) + self.final_size
        )

    def header(self) -> str:
        """Return the ``chain`` header line (no newline)."""
        return '\t'.join(
            str(v)
            for v in [
                'chain',
                self.score,
                self.target_name,
                self.target_size,
                self.target_strand,
                self.target_start,
                self.target_end,
                self.query_name,
                self.query_size,
                self.query_strand,
                self.query_start,
                self.query_end,
                self.chain_id,
            ]
        )

    def to_text(self) -> str:
        """Render the full chain, including its terminating blank line."""
        lines = [self.header()]
        lines.extend(f'{size}\t{dt}\t{dq}' for size, dt, dq in self.blocks)
        lines.append(str(self.final_size))
        return '\n'.join(lines) + '\n\n'


# ---------------------------------------------------------------------------
# Record -> chains
# ---------------------------------------------------------------------------


def record_cigars(record: PafRecord) -> list[str]:
    """Return the edit scripts to convert for *record*.

    The record's own ``cg:Z:`` scripts are used when present; otherwise a
    single script is synthesized from the aligned spans.
    """
    if record.cigars:
        return record.cigars
    return [synthesize_cigar(record.query_aligned_len, record.target_aligned_len)]


def record_to_chains(record: PafRecord, counter: ChainIdCounter) -> list[Chain]:
    """Convert one PAF record into chains.

    Parameters
    ----------
    record : PafRecord
        The alignment to convert.
    counter : ChainIdCounter
        Id source shared by the whole output stream.  Advanced once per
        returned chain.

    Returns
    -------
    list of Chain
        One chain per edit script that contains aligned columns; empty if
        none does.

    Raises
    ------
    ValueError
        If an edit script is malformed.
    """
    chains: list[Chain] = []
    for cigar in record_cigars(record):
        try:
            ops = parse_cigar(cigar)
        except ValueError as exc:
            raise ValueError(
                f'bad CIGAR for {record.query_name} -> {record.target_name}: {exc}'
            ) from exc
        trimmed = trim_cigar(ops)
        if trimmed is None:
            _log.debug(
                'Skipping %s -> %s: CIGAR %r has no aligned columns',
                record.query_name,
                record.target_name,
                cigar,
            )
            continue

        if record.query_is_rev:
            query_start = record.query_len - (
                record.query_end - trimmed.query_from_delta
            )
            query_end = record.query_len - (
                record.query_start + trimmed.query_to_delta
            )
        else:
            query_start = record.query_start + trimmed.query_from_delta
            query_end = record.query_end - trimmed.query_to_delta

        blocks, final_size = walk_blocks(trimmed.ops)
        chain = Chain(
            chain_id=counter.next(),
            target_name=record.target_name,
            target_size=record.target_len,
            target_start=record.target_start + trimmed.target_from_delta,
            target_end=record.target_end - trimmed.target_to_delta,
            query_name=record.query_name,
            query_size=record.query_len,
            query_strand=record.strand,
            query_start=query_start,
            query_end=query_end,
            blocks=blocks,
            final_size=final_size,
        )
        if (
            chain.target_span != chain.target_end - chain.target_start
            or chain.query_span != chain.query_end - chain.query_start
        ):
            _log.debug(
                'Chain %d (%s -> %s): blocks cover %d/%d bases but the header '
                'spans %d/%d',
                chain.chain_id,
                record.query_name,
                record.target_name,
                chain.target_span,
                chain.query_span,
                chain.target_end - chain.target_start,
                chain.query_end - chain.query_start,
            )
        chains.append(chain)
    return chains


def iter_chains(
    records: Iterable[PafRecord], counter: ChainIdCounter | None = None
) -> Iterator[Chain]:
    """Yield chains for a stream of records, numbering them sequentially.

    Parameters
    ----------
    records : iterable of PafRecord
        Alignments in output order.
    counter : ChainIdCounter or None, optional
        Id source.  A fresh counter starting at 0 is used when ``None``.

    Yields
    ------
    Chain
        Chains in record order.
    """
    if counter is None:
        counter = ChainIdCounter()
    for record in records:
        yield from record_to_chains(record, counter)


def write_chains(chains: Iterable[Chain], handle: TextIO) -> int:
    """Write chains to *handle* and return how many were written."""
    n = 0
    for chain in chains:
        handle.write(chain.to_text())
        n += 1
    return n


def default_output_path(input_path: str | Path) -> Path:
    """Return ``<input>.chain`` for *input_path*."""
    input_path = Path(input_path)
    return input_path.with_name(input_path.name + CHAIN_SUFFIX)


def paf_to_chain(
    input_path: str | Path,
    output_path: str | Path | None = None,
) -> int:
    """Convert a PAF file into a chain file.

    Parameters
    ----------
    input_path : str or Path
        PAF file, optionally gzip-compressed.
    output_path : str, Path or None, optional
        Destination.  Defaults to ``<input_path>.chain``; ``'-'`` writes to
        standard output.

    Returns
    -------
    int
        Number of chains written.

    Raises
    ------
    FileNotFoundError
        If *input_path* does not exist.
    ValueError
        If a PAF line or edit script is malformed.  Output written before
        the bad line is left in place.
    """
    if not Path(input_path).is_file():
        raise FileNotFoundError(f'PAF file not found: {input_path}')
    if output_path is None:
        output_path = default_output_path(input_path)
    _log.info('Converting %s -> %s', input_path, output_path)

    if str(output_path) == '-':
        sink = nullcontext(sys.stdout)
    else:
        sink = open(output_path, 'w', encoding='utf-8')
    n_records = 0

    def counted_records() -> Iterator[PafRecord]:
        nonlocal n_records
        for record in parse_paf_file(input_path):
            n_records += 1
            yield record

    with sink as out:
        n_chains = write_chains(iter_chains(counted_records()), out)

    _log.info('Read %d record(s), wrote %d chain(s)', n_records, n_chains)
    return n_chains


# ---------------------------------------------------------------------------
# Ungapped matches on the shared axes
# ---------------------------------------------------------------------------


class UngappedMatch(NamedTuple):
    """One run of aligned columns placed on the shared axes.

    ``target_start`` and ``query_start`` are where the run begins on the
    target and query axes.  On the reverse strand the run extends *down*
    the query axis, i.e. it covers ``(query_start - length, query_start]``.
    """

    target_start: int
    query_start: int
    length: int
    reverse: bool

    @property
    def target_end(self) -> int:
        return self.target_start + self.length

    @property
    def query_end(self) -> int:
        if self.reverse:
            return self.query_start - self.length
        return self.query_start + self.length


def record_global_start(
    record: PafRecord,
    query_catalog: 'SequenceCatalog',
    target_catalog: 'SequenceCatalog',
) -> tuple[int, int]:
    """Return where *record*'s alignment starts on the shared axes.

    Returns
    -------
    tuple of (int, int)
        ``(target_pos, query_pos)``.  On the reverse strand the walk starts
        from the query end.

    Raises
    ------
    KeyError
        If either sequence is missing from its catalog.
    """
    target_pos = target_catalog.global_start(record.target_name) + record.target_start
    query_offset = query_catalog.global_start(record.query_name)
    if record.query_is_rev:
        return target_pos, query_offset + record.query_end
    return target_pos, query_offset + record.query_start


def iter_ungapped_matches(
    record: PafRecord,
    query_catalog: 'SequenceCatalog',
    target_catalog: 'SequenceCatalog',
) -> Iterator[UngappedMatch]:
    """Yield every aligned-column run of *record* on the shared axes.

    Each edit script of the record (or the synthesized one) is walked from
    :func:`record_global_start`.  Aligned runs yield an
    :class:`UngappedMatch` and advance both positions, deletions advance the
    target only and insertions the query only.  The query position moves
    backwards on the reverse strand.

    Raises
    ------
    KeyError
        If either sequence is missing from its catalog.
    ValueError
        If an edit script is malformed.
    """
    reverse = record.query_is_rev
    step = -1 if reverse else 1
    for cigar in record_cigars(record):
        target_pos, query_pos = record_global_start(
            record, query_catalog, target_catalog
        )
        for length, op in parse_cigar(cigar):
            if op in MATCH_OPS:
                yield UngappedMatch(target_pos, query_pos, length, reverse)
                target_pos += length
                query_pos += step * length
            elif op == DELETION_OP:
                target_pos += length
            elif op == INSERTION_OP:
                query_pos += step * length


def for_each_ungapped_match(
    records: Iterable[PafRecord],
    query_catalog: 'SequenceCatalog',
    target_catalog: 'SequenceCatalog',
    callback: Callable[[PafRecord, UngappedMatch], None],
) -> int:
    """Call *callback* for every ungapped match of every record.

    Returns
    -------
    int
        Number of matches reported.
    """
    n = 0
    for record in records:
        for match in iter_ungapped_matches(record, query_catalog, target_catalog):
            callback(record, match)
            n += 1
    return n
