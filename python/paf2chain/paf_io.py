"""PAF (Pairwise mApping Format) file I/O.

This module provides:
- :class:`PafRecord` — a dataclass representing one PAF alignment line.
- :func:`open_paf` — open a PAF file for text reading, transparently
  decompressing ``.gz`` files.
- :func:`parse_paf_file` — a generator that yields :class:`PafRecord` objects.

Only the first nine PAF columns are required.  Columns 10-12 (residue
matches, alignment block length and mapping quality) are read when present,
and every ``key:type:value`` field is decoded into :attr:`PafRecord.tags`.

CIGAR support
-------------
The edit script of an alignment travels in the optional ``cg:Z:<cigar>``
SAM-like tag.  A record may in principle carry several such tags; all of them
are kept, in order, in :attr:`PafRecord.cigars`.

Examples
--------
>>> from paf2chain.paf_io import parse_paf_file
>>> for rec in parse_paf_file("alignments.paf.gz"):
...     print(rec.query_name, rec.target_name, rec.cigar)
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
import gzip
import logging
from pathlib import Path
from typing import Any, Generator, Iterator, TextIO

_log = logging.getLogger(__name__)

#: Prefix of the optional field holding the alignment's edit script.
CIGAR_TAG = 'cg:Z:'

#: Number of mandatory tab-separated columns in a PAF line.
PAF_REQUIRED_FIELDS = 9

_STRANDS = ('+', '-')

# Column index -> attribute name, for the mandatory integer columns.
_INT_COLUMNS = {
    1: 'query_len',
    2: 'query_start',
    3: 'query_end',
    6: 'target_len',
    7: 'target_start',
    8: 'target_end',
}

_OPTIONAL_INT_COLUMNS = {
    9: 'residue_matches',
    10: 'alignment_block_len',
    11: 'mapping_quality',
}


def _parse_unsigned(value: str, column: str) -> int:
    """Parse a non-negative decimal integer from a PAF column.

    Raises
    ------
    ValueError
        If *value* is not a plain unsigned decimal integer.
    """
    if not (value.isascii() and value.isdigit()):
        raise ValueError(
            f'PAF column {column!r} must be a non-negative integer, got {value!r}'
        )
    return int(value)


def _decode_tag(tag_field: str) -> tuple[str, Any] | None:
    """Decode a ``key:type:value`` optional field, or return ``None``."""
    parts = tag_field.split(':', 2)
    if len(parts) != 3:
        return None
    tag_name, tag_type, tag_value = parts
    try:
        if tag_type == 'i':
            return tag_name, int(tag_value)
        if tag_type == 'f':
            return tag_name, float(tag_value)
    except ValueError:
        _log.warning(
            'Tag %r declares type %r but holds %r; keeping it as text',
            tag_name,
            tag_type,
            tag_value,
        )
    return tag_name, tag_value


# ---------------------------------------------------------------------------
# PafRecord dataclass
# ---------------------------------------------------------------------------


@dataclass
class PafRecord:
    """A single PAF alignment record.

    Parameters
    ----------
    query_name : str
        Query sequence name (column 1).
    query_len : int
        Query sequence length (column 2).
    query_start : int
        Query start position, 0-based, forward strand (column 3).
    query_end : int
        Query end position, exclusive, forward strand (column 4).
    strand : str
        Relative strand: ``"+"`` or ``"-"`` (column 5).
    target_name : str
        Target sequence name (column 6).
    target_len : int
        Target sequence length (column 7).
    target_start : int
        Target start position, 0-based (column 8).
    target_end : int
        Target end position, exclusive (column 9).
    residue_matches : int or None
        Number of residue matches (column 10), if present.
    alignment_block_len : int or None
        Number of bases in the alignment block (column 11), if present.
    mapping_quality : int or None
        Mapping quality (column 12), if present.
    tags : dict[str, Any]
        Optional SAM-like tags decoded as ``{tag_name: value}``.  When a tag
        name repeats, the first occurrence is kept.
    cigars : list[str]
        Every ``cg:Z:`` edit script carried by the line, in column order.
    """

    query_name: str
    query_len: int
    query_start: int
    query_end: int
    strand: str
    target_name: str
    target_len: int
    target_start: int
    target_end: int
    residue_matches: int | None = None
    alignment_block_len: int | None = None
    mapping_quality: int | None = None
    tags: dict[str, Any] = field(default_factory=dict)
    cigars: list[str] = field(default_factory=list)

    @property
    def cigar(self) -> str | None:
        """Return the first edit script carried by the record, or ``None``."""
        return self.cigars[0] if self.cigars else None

    @property
    def query_is_rev(self) -> bool:
        """Return ``True`` when the query aligns on the reverse strand."""
        return self.strand == '-'

    @property
    def query_aligned_len(self) -> int:
        """Return the aligned length on the query sequence.

        Returns
        -------
        int
            ``query_end - query_start``.
        """
        return self.query_end - self.query_start

    @property
    def target_aligned_len(self) -> int:
        """Return the aligned length on the target sequence.

        Returns
        -------
        int
            ``target_end - target_start``.
        """
        return self.target_end - self.target_start

    @classmethod
    def from_line(cls, line: str) -> 'PafRecord':
        """Parse a single PAF text line into a :class:`PafRecord`.

        Parameters
        ----------
        line : str
            A single PAF record line (tab-separated, trailing newline optional).

        Returns
        -------
        PafRecord
            The parsed record.

        Raises
        ------
        ValueError
            If the line has fewer than 9 tab-separated fields, a numeric
            column is not a non-negative integer, the strand is not ``+`` or
            ``-``, or an interval ends before it begins.
        """
        fields = line.rstrip('\r\n').split('\t')
        if len(fields) < PAF_REQUIRED_FIELDS:
            raise ValueError(
                f'PAF line has {len(fields)} fields; expected at least '
                f'{PAF_REQUIRED_FIELDS}: {line!r}'
            )

        values: dict[str, Any] = {
            attr: _parse_unsigned(fields[col], attr)
            for col, attr in _INT_COLUMNS.items()
        }
        strand = fields[4]
        if strand not in _STRANDS:
            raise ValueError(f'PAF strand must be "+" or "-", got {strand!r}')
        if values['query_end'] < values['query_start']:
            raise ValueError(
                f'query interval ends before it begins: '
                f'{values["query_start"]}-{values["query_end"]}'
            )
        if values['target_end'] < values['target_start']:
            raise ValueError(
                f'target interval ends before it begins: '
                f'{values["target_start"]}-{values["target_end"]}'
            )

        # Columns 10-12 are positional only when they are bare integers;
        # minimap2-style short PAF lines may go straight to the tags.
        for col, attr in _OPTIONAL_INT_COLUMNS.items():
            if col < len(fields) and fields[col].isascii() and fields[col].isdigit():
                values[attr] = int(fields[col])

        tags: dict[str, Any] = {}
        cigars: list[str] = []
        for tag_field in fields[PAF_REQUIRED_FIELDS:]:
            if tag_field.startswith(CIGAR_TAG):
                cigars.append(tag_field[len(CIGAR_TAG):])
            decoded = _decode_tag(tag_field)
            if decoded is not None:
                tags.setdefault(*decoded)

        return cls(
            query_name=fields[0],
            strand=strand,
            target_name=fields[5],
            tags=tags,
            cigars=cigars,
            **values,
        )

    def to_line(self) -> str:
        """Serialise the nine mandatory columns back to PAF text (no newline).

        Returns
        -------
        str
            Tab-separated PAF line.  Optional columns and tags are not
            included.
        """
        return '\t'.join(
            str(v)
            for v in [
                self.query_name,
                self.query_len,
                self.query_start,
                self.query_end,
                self.strand,
                self.target_name,
                self.target_len,
                self.target_start,
                self.target_end,
            ]
        )


# ---------------------------------------------------------------------------
# File helpers
# ---------------------------------------------------------------------------


@contextmanager
def open_paf(path: str | Path) -> Iterator[TextIO]:
    """Open a PAF file for text reading.

    Files whose name ends in ``.gz`` are decompressed on the fly
    (concatenated gzip members are supported).

    Parameters
    ----------
    path : str or Path
        Path to the PAF file.

    Yields
    ------
    TextIO
        Text handle positioned at the start of the file.  It is closed when
        the ``with`` block exits.

    Raises
    ------
    FileNotFoundError
        If ``path`` does not exist.
    """
    path = Path(path)
    if path.suffix == '.gz':
        fh = gzip.open(path, 'rt', encoding='utf-8')
    else:
        fh = path.open('r', encoding='utf-8')
    with fh:
        yield fh


def parse_paf_file(path: str | Path) -> Generator[PafRecord, None, None]:
    """Yield :class:`PafRecord` objects from a PAF file.

    Lines beginning with ``#`` are treated as comments and skipped.  Empty
    lines are also skipped.

    Parameters
    ----------
    path : str or Path
        Path to the PAF file, optionally gzip-compressed.

    Yields
    ------
    PafRecord
        One record per non-comment, non-empty line.

    Raises
    ------
    FileNotFoundError
        If ``path`` does not exist.
    ValueError
        If a line cannot be parsed as a PAF record.  The message carries the
        file name and 1-based line number.
    """
    with open_paf(path) as fh:
        for line_no, line in enumerate(fh, start=1):
            line = line.rstrip('\r\n')
            if not line or line.startswith('#'):
                continue
            try:
                record = PafRecord.from_line(line)
            except ValueError as exc:
                raise ValueError(f'{path}:{line_no}: {exc}') from exc
            yield record
