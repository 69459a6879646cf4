"""Sequence catalogs placing every query or target on one shared axis.

A :class:`SequenceCatalog` interns the distinct sequence names of one
namespace (queries or targets) into dense integer ids and lays the
sequences end to end, longest first, on a single linear coordinate axis.
This is the coordinate system used to draw a whole-genome dotplot: a
position ``p`` on sequence ``s`` maps to ``catalog.global_start(s) + p``.

Catalogs are built by :func:`build_catalogs`, which reads its source twice:
once to discover the complete name set, and once to record each sequence's
length against its id.  Once built, a catalog is read-only.

Examples
--------
>>> from paf2chain.catalog import build_catalogs
>>> queries, targets = build_catalogs("alignments.paf")
>>> targets.global_start("chr2")
248956422
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Union

from paf2chain.paf_io import PafRecord, parse_paf_file

_log = logging.getLogger(__name__)

PafSource = Union[str, Path, Iterable[Union[PafRecord, str]]]


@dataclass(frozen=True)
class AlignedSequence:
    """One distinct query or target sequence.

    Parameters
    ----------
    name : str
        Sequence name, unique within its namespace.
    length : int
        Sequence length in bases.
    rank : int
        0-based position when the namespace is sorted by descending length.
    offset : int
        Start of the sequence on the shared axis: the summed lengths of all
        sequences ranked before it.
    """

    name: str
    length: int
    rank: int
    offset: int

    @property
    def end(self) -> int:
        """Return the exclusive end of the sequence on the shared axis."""
        return self.offset + self.length


class SequenceCatalog:
    """Dense name index and shared-axis layout for one sequence namespace.

    Instances are normally produced by :func:`build_catalogs`.  Sequence ids
    are positions in the sorted list of distinct names, so they are dense in
    ``[0, len(catalog))``.

    Parameters
    ----------
    sequences : list of AlignedSequence
        Sequences indexed by id.
    """

    def __init__(self, sequences: list[AlignedSequence]) -> None:
        self._sequences: tuple[AlignedSequence, ...] = tuple(sequences)
        self._ids: dict[str, int] = {
            seq.name: idx for idx, seq in enumerate(self._sequences)
        }
        self._axis_length: int = sum(seq.length for seq in self._sequences)

    @classmethod
    def from_lengths(cls, lengths: dict[str, int]) -> 'SequenceCatalog':
        """Build a catalog from a complete ``{name: length}`` mapping.

        Ids follow sorted name order; ranks follow descending length with
        ties broken by id.

        Parameters
        ----------
        lengths : dict[str, int]
            Length of every sequence in the namespace.

        Returns
        -------
        SequenceCatalog
            The laid-out catalog.
        """
        names = sorted(lengths)
        by_rank = sorted(range(len(names)), key=lambda i: -lengths[names[i]])
        placed: dict[int, tuple[int, int]] = {}
        offset = 0
        for rank, idx in enumerate(by_rank):
            placed[idx] = (rank, offset)
            offset += lengths[names[idx]]
        return cls(
            [
                AlignedSequence(name, lengths[name], *placed[idx])
                for idx, name in enumerate(names)
            ]
        )

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._sequences)

    def __contains__(self, name: object) -> bool:
        return name in self._ids

    def __iter__(self) -> Iterator[AlignedSequence]:
        return iter(self._sequences)

    def __repr__(self) -> str:
        return (
            f'SequenceCatalog(sequences={len(self)}, '
            f'axis_length={self._axis_length})'
        )

    @property
    def axis_length(self) -> int:
        """Total length of the shared axis (sum of all sequence lengths)."""
        return self._axis_length

    @property
    def names(self) -> list[str]:
        """Sequence names in id order."""
        return [seq.name for seq in self._sequences]

    def id_of(self, name: str) -> int:
        """Return the dense id of *name*.

        Raises
        ------
        KeyError
            If *name* was not seen when the catalog was built.
        """
        try:
            return self._ids[name]
        except KeyError:
            raise KeyError(f'sequence {name!r} is not in the catalog') from None

    def sequence(self, idx: int) -> AlignedSequence:
        """Return the :class:`AlignedSequence` with id *idx*."""
        return self._sequences[idx]

    def length(self, idx: int) -> int:
        """Return the length of the sequence with id *idx*."""
        return self._sequences[idx].length

    def global_start(self, name: str) -> int:
        """Return the offset of sequence *name* on the shared axis.

        Raises
        ------
        KeyError
            If *name* is unknown.
        """
        return self._sequences[self.id_of(name)].offset

    def global_range(self, name: str, start: int, end: int) -> tuple[int, int]:
        """Translate a ``[start, end)`` interval on *name* to the shared axis."""
        offset = self.global_start(name)
        return offset + start, offset + end

    def by_rank(self) -> list[AlignedSequence]:
        """Return the sequences in axis order (longest first)."""
        return sorted(self._sequences, key=lambda seq: seq.rank)


# ---------------------------------------------------------------------------
# Two-pass builder
# ---------------------------------------------------------------------------


def iter_source_records(source: PafSource) -> Iterable[PafRecord]:
    """Return one fresh pass over *source* as :class:`PafRecord` objects."""
    if isinstance(source, (str, Path)):
        return parse_paf_file(source)
    return (
        item if isinstance(item, PafRecord) else PafRecord.from_line(item)
        for item in source
        if isinstance(item, PafRecord) or (item.strip() and not item.startswith('#'))
    )


def build_catalogs(source: PafSource) -> tuple[SequenceCatalog, SequenceCatalog]:
    """Build the query and target catalogs for a set of alignments.

    The source is read twice.  The first pass collects the distinct query
    and target names; the second records each sequence's length against its
    dense id, the first length seen for a name being kept.

    Parameters
    ----------
    source : str, Path, or re-iterable of PafRecord / str
        A PAF file path (re-opened for each pass) or a collection such as a
        list of records or PAF lines.

    Returns
    -------
    tuple of (SequenceCatalog, SequenceCatalog)
        ``(query_catalog, target_catalog)``.

    Raises
    ------
    TypeError
        If *source* is a one-shot iterator, which cannot be read twice.
    ValueError
        If a PAF line in *source* is malformed.
    """
    if not isinstance(source, (str, Path)) and iter(source) is source:
        raise TypeError(
            'build_catalogs needs a path or a re-iterable collection; '
            'got a one-shot iterator'
        )

    query_names: set[str] = set()
    target_names: set[str] = set()
    for rec in iter_source_records(source):
        query_names.add(rec.query_name)
        target_names.add(rec.target_name)

    query_lengths = dict.fromkeys(sorted(query_names), None)
    target_lengths = dict.fromkeys(sorted(target_names), None)
    for rec in iter_source_records(source):
        _record_length(query_lengths, rec.query_name, rec.query_len, 'query')
        _record_length(target_lengths, rec.target_name, rec.target_len, 'target')

    queries = SequenceCatalog.from_lengths(query_lengths)
    targets = SequenceCatalog.from_lengths(target_lengths)
    _log.info(
        'Catalogued %d query sequence(s) (%d bp) and %d target sequence(s) (%d bp)',
        len(queries),
        queries.axis_length,
        len(targets),
        targets.axis_length,
    )
    return queries, targets


def _record_length(
    lengths: dict[str, int | None], name: str, length: int, namespace: str
) -> None:
    if name not in lengths:
        raise KeyError(
            f'{namespace} sequence {name!r} appeared only on the second pass; '
            'the PAF source changed between passes'
        )
    known = lengths[name]
    if known is None:
        lengths[name] = length
    elif known != length:
        _log.warning(
            '%s sequence %r has conflicting lengths %d and %d; keeping %d',
            namespace.capitalize(),
            name,
            known,
            length,
            known,
        )
