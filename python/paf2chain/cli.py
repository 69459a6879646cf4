"""Command-line entry point: ``paf2chain -i alignments.paf [-o out.chain]``."""

from __future__ import annotations

import argparse
import logging
import sys

from paf2chain import __version__
from paf2chain.chain import paf_to_chain

_log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser for the ``paf2chain`` command."""
    parser = argparse.ArgumentParser(
        prog='paf2chain',
        description='Generate a CHAIN format file from a PAF format file',
    )
    parser.add_argument(
        '-i', '--input', required=True, help='Input PAF file (optionally .gz)'
    )
    parser.add_argument(
        '-o',
        '--output',
        help="Output chain file, [<input>.chain]; '-' writes to stdout",
    )
    parser.add_argument(
        '--dotplot',
        metavar='IMAGE',
        help='Also draw a whole-genome dotplot (.png, .svg, .pdf)',
    )
    parser.add_argument(
        '-v', '--verbose', action='store_true', help='Log per-record details'
    )
    parser.add_argument('--version', action='version', version=__version__)
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the converter and return the process exit status."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
        stream=sys.stderr,
    )

    try:
        paf_to_chain(args.input, args.output)
        if args.dotplot:
            from paf2chain.dotplot import DotPlotter

            DotPlotter.from_file(args.input).plot(output_path=args.dotplot)
    except (OSError, EOFError, ValueError, KeyError) as exc:
        _log.error('%s', exc)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
