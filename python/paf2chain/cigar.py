"""CIGAR edit-script handling for chain conversion.

A CIGAR string is a run-length encoded list of alignment operations, e.g.
``"10M5D70M"``.  Three groups of operation codes are understood:

``M``, ``=``, ``X``
    Aligned columns (match or mismatch); consume both query and target.
``I``
    Insertion; consumes the query only.
``D``
    Deletion; consumes the target only.

Any other operation code (``S``, ``H``, ``N``, ``P``, ...) is accepted by the
tokeniser but contributes nothing to run-length totals or block splitting in
:func:`trim_cigar` and :func:`walk_blocks`.

The chain format requires a gapped alignment to start and end with aligned
columns, so :func:`trim_cigar` removes leading and trailing indel runs and
reports how far the alignment interval has to shrink on each side.
"""

from __future__ import annotations

import logging
import re
from typing import NamedTuple

_log = logging.getLogger(__name__)

MATCH_OPS = frozenset('M=X')
INSERTION_OP = 'I'
DELETION_OP = 'D'

#: Largest run length accepted in an edit script (unsigned 64-bit).
MAX_RUN_LENGTH = 2**64 - 1

# Each token is an (optional) ASCII digit run closed by exactly one non-digit.
_CIGAR_TOKEN_RE = re.compile(r'([0-9]*)([^0-9])')


class CigarOp(NamedTuple):
    """One ``(length, op)`` run of an edit script."""

    length: int
    op: str


class TrimmedCigar(NamedTuple):
    """An edit script with its terminal indels removed.

    Attributes
    ----------
    ops : list of CigarOp
        Runs from the first to the last aligned-column run, inclusive.
    query_from_delta : int
        Inserted bases removed from the start.
    target_from_delta : int
        Deleted bases removed from the start.
    query_to_delta : int
        Inserted bases removed from the end.
    target_to_delta : int
        Deleted bases removed from the end.
    """

    ops: list[CigarOp]
    query_from_delta: int
    target_from_delta: int
    query_to_delta: int
    target_to_delta: int


def parse_cigar(cigar: str) -> list[CigarOp]:
    """Tokenise a CIGAR string into runs.

    Parameters
    ----------
    cigar : str
        CIGAR string (e.g. ``"10M2I5D"``).  An empty string yields no runs.

    Returns
    -------
    list of CigarOp
        Runs in script order.  Unknown operation codes are kept.

    Raises
    ------
    ValueError
        If an operation has no run length, a run length is zero or exceeds
        :data:`MAX_RUN_LENGTH`, or the string ends with digits that are not
        followed by an operation code.
    """
    ops: list[CigarOp] = []
    consumed = 0
    for match in _CIGAR_TOKEN_RE.finditer(cigar):
        length_str, op = match.groups()
        if not length_str:
            raise ValueError(
                f'CIGAR operation {op!r} at offset {match.start()} has no '
                f'run length: {cigar!r}'
            )
        length = int(length_str)
        if length == 0:
            raise ValueError(
                f'CIGAR operation {op!r} at offset {match.start()} has a zero '
                f'run length: {cigar!r}'
            )
        if length > MAX_RUN_LENGTH:
            raise ValueError(f'CIGAR run length {length_str} is out of range')
        ops.append(CigarOp(length, op))
        consumed = match.end()
    if consumed != len(cigar):
        raise ValueError(
            f'CIGAR string ends with a run length but no operation: {cigar!r}'
        )
    return ops


def format_cigar(ops: list[CigarOp]) -> str:
    """Render runs back to CIGAR text."""
    return ''.join(f'{length}{op}' for length, op in ops)


def synthesize_cigar(query_len: int, target_len: int) -> str:
    """Build a stand-in edit script for a record that carries none.

    The shorter of the two aligned spans becomes one run of aligned columns;
    any excess on the longer axis follows as a single insertion (query
    longer) or deletion (target longer) run.

    Parameters
    ----------
    query_len : int
        ``query_end - query_start``.
    target_len : int
        ``target_end - target_start``.

    Returns
    -------
    str
        E.g. ``"50M30D"`` for ``query_len=50, target_len=80``.  The aligned
        run is left out when it would be empty, so a record with a
        zero-length span yields a pure gap script (or ``""``).
    """
    parts = []
    matched = min(query_len, target_len)
    if matched > 0:
        parts.append(f'{matched}M')
    if query_len > target_len:
        parts.append(f'{query_len - target_len}{INSERTION_OP}')
    elif target_len > query_len:
        parts.append(f'{target_len - query_len}{DELETION_OP}')
    return ''.join(parts)


def trim_cigar(ops: list[CigarOp]) -> TrimmedCigar | None:
    """Strip leading and trailing indel runs from an edit script.

    Parameters
    ----------
    ops : list of CigarOp
        Parsed edit script.

    Returns
    -------
    TrimmedCigar or None
        The trimmed runs plus the indel lengths removed on each side, or
        ``None`` when the script contains no aligned-column run at all.
    """
    trim_from: int | None = None
    trim_to = 0
    query_from_delta = target_from_delta = 0
    query_to_delta = target_to_delta = 0
    unknown: set[str] = set()

    for i, (length, op) in enumerate(ops):
        if op in MATCH_OPS:
            if trim_from is None:
                trim_from = i
            trim_to = i + 1
            query_to_delta = target_to_delta = 0
        elif op == DELETION_OP:
            if trim_from is None:
                target_from_delta += length
            target_to_delta += length
        elif op == INSERTION_OP:
            if trim_from is None:
                query_from_delta += length
            query_to_delta += length
        else:
            # Operation code outside the known set: no effect on totals.
            unknown.add(op)

    if unknown:
        _log.debug('Ignoring CIGAR operation code(s) %s', ''.join(sorted(unknown)))
    if trim_from is None:
        return None
    return TrimmedCigar(
        ops=ops[trim_from:trim_to],
        query_from_delta=query_from_delta,
        target_from_delta=target_from_delta,
        query_to_delta=query_to_delta,
        target_to_delta=target_to_delta,
    )


def walk_blocks(ops: list[CigarOp]) -> tuple[list[tuple[int, int, int]], int]:
    """Split a trimmed edit script into chain alignment blocks.

    Consecutive aligned-column runs (e.g. ``5=1X4=``) merge into a single
    ungapped block; a block is closed only when a gap precedes the next
    aligned run.

    Parameters
    ----------
    ops : list of CigarOp
        Edit script as returned in :attr:`TrimmedCigar.ops`.

    Returns
    -------
    tuple of (list of (int, int, int), int)
        ``(blocks, final_size)`` where each block is
        ``(ungapped_size, target_gap, query_gap)`` and *final_size* is the
        last ungapped block, which has no gap after it.
    """
    blocks: list[tuple[int, int, int]] = []
    ungapped_len = 0
    target_delta = 0
    query_delta = 0
    for length, op in ops:
        if op in MATCH_OPS:
            if ungapped_len > 0 and (target_delta > 0 or query_delta > 0):
                blocks.append((ungapped_len, target_delta, query_delta))
                ungapped_len = 0
            target_delta = query_delta = 0
            ungapped_len += length
        elif op == DELETION_OP:
            target_delta += length
        elif op == INSERTION_OP:
            query_delta += length
    return blocks, ungapped_len
