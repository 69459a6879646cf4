"""
Whole-genome dotplot rendering for paf2chain.

Provides the DotPlotter class, which lays every query and target sequence
end to end on two shared axes (see :mod:`paf2chain.catalog`) and draws each
ungapped match of each alignment as a line segment.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from matplotlib.collections import LineCollection
import matplotlib.figure
import matplotlib.pyplot as plt

from paf2chain.catalog import (
    PafSource,
    SequenceCatalog,
    build_catalogs,
    iter_source_records,
)
from paf2chain.chain import iter_ungapped_matches

_log = logging.getLogger(__name__)


class DotPlotter:
    """Draw alignments on the shared query/target axes.

    Targets run along the x-axis and queries down the y-axis, each in
    catalog axis order (longest sequence first).  Forward-strand matches are
    drawn as diagonal segments, reverse-strand matches as anti-diagonal ones::

        from paf2chain.dotplot import DotPlotter

        plotter = DotPlotter.from_file("alignments.paf")
        plotter.plot(output_path="dotplot.png")

    Parameters
    ----------
    query_catalog : SequenceCatalog
        Layout of the query axis.
    target_catalog : SequenceCatalog
        Layout of the target axis.
    source : str, Path, re-iterable of PafRecord / str, or None, optional
        Default alignments for :meth:`plot`.
    """

    def __init__(
        self,
        query_catalog: SequenceCatalog,
        target_catalog: SequenceCatalog,
        source: Optional[PafSource] = None,
    ) -> None:
        self.query_catalog = query_catalog
        self.target_catalog = target_catalog
        self.source = source

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> 'DotPlotter':
        """Build catalogs from a PAF file and plot that file's alignments.

        Parameters
        ----------
        path : str or Path
            PAF file, optionally gzip-compressed.

        Returns
        -------
        DotPlotter
            Plotter whose default source is *path*.
        """
        query_catalog, target_catalog = build_catalogs(path)
        return cls(query_catalog, target_catalog, source=path)

    def segments(
        self,
        source: Optional[PafSource] = None,
        min_length: int = 0,
    ) -> tuple[list, list]:
        """Collect match segments in shared-axis coordinates.

        Parameters
        ----------
        source : PafSource or None, optional
            Alignments to draw.  Defaults to the plotter's own source.
        min_length : int, optional
            Matches shorter than this are dropped.  Default is ``0``.

        Returns
        -------
        tuple of (list, list)
            ``(forward, reverse)`` lists of ``((x0, y0), (x1, y1))`` segments.

        Raises
        ------
        ValueError
            If no source is available.
        """
        source = source if source is not None else self.source
        if source is None:
            raise ValueError('No alignments to plot: pass a PAF source.')
        forward: list = []
        reverse: list = []
        for record in iter_source_records(source):
            for match in iter_ungapped_matches(
                record, self.query_catalog, self.target_catalog
            ):
                if match.length < min_length:
                    continue
                segment = (
                    (match.target_start, match.query_start),
                    (match.target_end, match.query_end),
                )
                (reverse if match.reverse else forward).append(segment)
        _log.debug(
            'DotPlotter: %d forward and %d reverse segment(s)',
            len(forward),
            len(reverse),
        )
        return forward, reverse

    def plot(
        self,
        source: Optional[PafSource] = None,
        output_path: Optional[Union[str, Path]] = None,
        figsize: float = 8.0,
        line_width: float = 0.8,
        dot_color: str = 'blue',
        rc_color: str = 'red',
        title: Optional[str] = None,
        dpi: int = 150,
        format: Optional[str] = None,
        min_length: int = 0,
        show_boundaries: bool = True,
    ) -> matplotlib.figure.Figure:
        """Plot all alignments on one pair of shared axes.

        The figure is always returned so it can be displayed inline in a
        Jupyter notebook.  When ``output_path`` is provided the figure is
        also saved to disk.

        Parameters
        ----------
        source : PafSource or None, optional
            Alignments to draw.  Defaults to the plotter's own source.
        output_path : str or Path, optional
            Output image file path.  When ``None`` (default) the figure is
            not saved.
        figsize : float, optional
            Size in inches of the longer axis; the other axis is scaled to
            keep the genome proportions.  Default is ``8.0``.
        line_width : float, optional
            Width of the match segments.  Default is ``0.8``.
        dot_color : str, optional
            Colour for forward-strand (``+``) matches. Default is ``"blue"``.
        rc_color : str, optional
            Colour for reverse-strand (``-``) matches. Default is ``"red"``.
        title : str, optional
            Figure title.  If ``None``, no title is added.
        dpi : int, optional
            Resolution of the output image. Default is ``150``.
        format : str, optional
            Output image format (e.g. ``'png'``, ``'svg'``, ``'pdf'``).
            When ``None`` (default), the format is inferred from the
            ``output_path`` file extension.
        min_length : int, optional
            Minimum match length to draw.  Default is ``0``.
        show_boundaries : bool, optional
            Draw thin grid lines where sequences meet.  Default is ``True``.

        Returns
        -------
        matplotlib.figure.Figure
            The rendered figure.

        Raises
        ------
        ValueError
            If either catalog is empty or there is no source to draw.
        """
        t_total = self.target_catalog.axis_length
        q_total = self.query_catalog.axis_length
        if t_total == 0 or q_total == 0:
            raise ValueError('Cannot plot: query or target catalog is empty.')

        forward, reverse = self.segments(source, min_length=min_length)

        longest = max(t_total, q_total)
        fig_w = max(figsize * t_total / longest, 1.0)
        fig_h = max(figsize * q_total / longest, 1.0)
        fig, ax = plt.subplots(figsize=(fig_w, fig_h))

        if forward:
            ax.add_collection(
                LineCollection(forward, colors=dot_color, linewidths=line_width)
            )
        if reverse:
            ax.add_collection(
                LineCollection(reverse, colors=rc_color, linewidths=line_width)
            )

        t_seqs = self.target_catalog.by_rank()
        q_seqs = self.query_catalog.by_rank()
        if show_boundaries:
            for seq in t_seqs[1:]:
                ax.axvline(seq.offset, color='grey', linewidth=0.3)
            for seq in q_seqs[1:]:
                ax.axhline(seq.offset, color='grey', linewidth=0.3)

        # Sequence names centred on their stretch of axis.
        ax.set_xticks([seq.offset + seq.length / 2 for seq in t_seqs])
        ax.set_xticklabels(
            [seq.name for seq in t_seqs], fontsize=6, rotation=45, ha='right'
        )
        ax.set_yticks([seq.offset + seq.length / 2 for seq in q_seqs])
        ax.set_yticklabels([seq.name for seq in q_seqs], fontsize=6)

        ax.set_xlim(0, t_total)
        ax.set_ylim(0, q_total)
        ax.invert_yaxis()
        ax.set_xlabel('target', fontsize=8)
        ax.set_ylabel('query', fontsize=8)
        ax.set_aspect('auto')
        if title:
            ax.set_title(title, fontsize=10)

        plt.tight_layout()
        if output_path is not None:
            plt.savefig(str(output_path), dpi=dpi, bbox_inches='tight', format=format)
            _log.info('DotPlotter: wrote %s', output_path)
        return fig
