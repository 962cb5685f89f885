#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ColumnWeaver v0.1.0

Assembly Export: GML overlap-graph export, contig export, and read layout
export (plain text or tab-delimited).

Author: ColumnWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, TextIO, Tuple

from .alignment_io import Alignment, Lane, open_file
from ..utils.progress import ProgressContext

logger = logging.getLogger(__name__)


# ============================================================================
#                           GRAPH PROTOCOL
# ============================================================================

class OverlapGraphLike(Protocol):
    """Minimum interface of a graph that can be written as GML."""

    node_ids: List[int]

    def iter_edges(self) -> Iterable:
        """Yield edges with .source, .target and .overlap."""
        ...

    def get_number_of_nodes(self) -> int:
        ...

    def get_number_of_edges(self) -> int:
        ...


# ============================================================================
#                       GML EXPORT FUNCTIONS
# ============================================================================

GML_COMMENT = "Overlap graph generated by ColumnWeaver"


def gml_quote(value: str) -> str:
    """Quote a GML string value (double quotes become &quot;)."""
    return '"' + str(value).replace('&', '&amp;').replace('"', '&quot;') + '"'


def _gml_attributes(attributes: Mapping[str, Optional[str]], indent: str) -> List[str]:
    # Alphabetical keys; None values are omitted
    return [
        f"{indent}{key} {gml_quote(value)}"
        for key, value in sorted(attributes.items())
        if value is not None
    ]


def write_overlap_graph_gml(
    graph: OverlapGraphLike,
    node_lanes: Mapping[int, Lane],
    writer: TextIO,
    graph_label: str = "",
    comment: str = GML_COMMENT,
) -> Tuple[int, int]:
    """
    Write the overlap graph as a GML document.

    Each node carries `label` (first word of the read name) and `sequence`
    (the read's aligned block); each edge carries `overlap`. The edge `label`
    attribute is intentionally left out.

    Args:
        graph: Overlap graph
        node_lanes: node id -> lane the node was built from
        writer: Open text stream
        graph_label: Graph-level label (usually the alignment name)
        comment: Graph-level comment

    Returns:
        (number of nodes, number of edges) written
    """
    num_nodes = graph.get_number_of_nodes()
    num_edges = graph.get_number_of_edges()
    logger.info(f"Writing GML with {num_nodes} nodes and {num_edges} edges...")

    writer.write("graph [\n")
    writer.write(f"\tcomment {gml_quote(comment)}\n")
    writer.write("\tdirected 1\n")
    writer.write("\tid 1\n")
    writer.write(f"\tlabel {gml_quote(graph_label)}\n")
    writer.write(f"\tnumberOfNodes {num_nodes}\n")
    writer.write(f"\tnumberOfEdges {num_edges}\n")

    for node_id in graph.node_ids:
        lane = node_lanes[node_id]
        writer.write("\tnode [\n")
        writer.write(f"\t\tid {node_id}\n")
        for line in _gml_attributes({'label': lane.first_word, 'sequence': lane.block}, "\t\t"):
            writer.write(line + "\n")
        writer.write("\t]\n")

    for edge in graph.iter_edges():
        writer.write("\tedge [\n")
        writer.write(f"\t\tsource {edge.source}\n")
        writer.write(f"\t\ttarget {edge.target}\n")
        for line in _gml_attributes({'label': None, 'overlap': str(edge.overlap)}, "\t\t"):
            writer.write(line + "\n")
        writer.write("\t]\n")

    writer.write("]\n")
    writer.flush()
    return num_nodes, num_edges


_GML_COUNT = re.compile(r'^\s*(numberOfNodes|numberOfEdges)\s+(\d+)\s*$', re.MULTILINE)


def read_gml_counts(text: str) -> Tuple[int, int]:
    """
    Recover the declared (nodes, edges) counts of a GML document.

    Raises:
        ValueError: If either declaration is missing
    """
    counts = dict((key, int(value)) for key, value in _GML_COUNT.findall(text))
    if 'numberOfNodes' not in counts or 'numberOfEdges' not in counts:
        raise ValueError("GML document does not declare numberOfNodes/numberOfEdges")
    return counts['numberOfNodes'], counts['numberOfEdges']


# ============================================================================
#                       CONTIG EXPORT FUNCTIONS
# ============================================================================

def write_contigs(
    contigs: Iterable[Tuple[str, str]],
    writer: TextIO,
    progress: Optional[ProgressContext] = None
) -> int:
    """
    Write contigs as two lines each: trimmed header, trimmed sequence.

    Args:
        contigs: (header, sequence) pairs in acceptance order
        writer: Open text stream
        progress: Progress context (one unit per contig)

    Returns:
        Number of contigs written
    """
    contigs = list(contigs)
    progress = progress or ProgressContext()
    progress.set_subtask("Writing contigs")
    progress.set_maximum(len(contigs))
    progress.set_progress(0)

    for header, sequence in contigs:
        writer.write(header.strip())
        writer.write("\n")
        writer.write(sequence.strip())
        writer.write("\n")
        progress.increment_progress()

    writer.flush()
    progress.report_task_completed()
    return len(contigs)


def write_contigs_fasta(
    contigs: Iterable[Tuple[str, str]],
    output_path: str | Path,
    progress: Optional[ProgressContext] = None
) -> int:
    """Write contigs to a (possibly gzipped) file."""
    output_path = Path(output_path)
    logger.info(f"Writing contigs: {output_path}")
    with open_file(output_path, 'w') as f:
        count = write_contigs(contigs, f, progress)
    logger.info(f"Wrote {count} contigs")
    return count


# ============================================================================
#                       READ LAYOUT EXPORT
# ============================================================================

class LayoutFormat(Enum):
    """Output flavour of a read layout export."""
    TEXT = "text"
    TAB = "tab"

    @classmethod
    def from_filename(cls, filename: str | Path) -> 'LayoutFormat':
        name = str(filename)
        if name.endswith(('.tab', '.tab.gz', '.tsv', '.tsv.gz')):
            return cls.TAB
        return cls.TEXT


@dataclass
class LayoutRecord:
    """Placement of one read: where it sits and which contig absorbed it."""
    read_name: str
    contig: Optional[str]
    start: int
    end: int
    bases: int


class TextLayoutFormatter:
    """Human-readable blocks, one per read, under a banner."""

    def header(self, alignment_name: str) -> str:
        return f"READ LAYOUT of {alignment_name} generated by ColumnWeaver\n\n"

    def format(self, record: LayoutRecord) -> str:
        contig = record.contig if record.contig is not None else " ***** Not in any contig *****"
        return (
            f"\nRead={record.read_name}\n"
            f"\t({record.bases} bases)\n\n"
            f" Contig={contig}\n"
            f" Columns={record.start + 1}-{record.end}\n"
        )


class TabLayoutFormatter:
    """One tab-separated line per read, no banner."""

    def header(self, alignment_name: str) -> str:
        return ""

    def format(self, record: LayoutRecord) -> str:
        contig = record.contig if record.contig is not None else ""
        return f"{record.read_name}\t{contig}\t{record.start + 1}\t{record.end}\t{record.bases}\n"


_FORMATTERS = {
    LayoutFormat.TEXT: TextLayoutFormatter,
    LayoutFormat.TAB: TabLayoutFormatter,
}


def get_layout_formatter(fmt: LayoutFormat):
    return _FORMATTERS[fmt]()


def layout_records(alignment: Alignment, read2contig: Mapping[int, str]) -> List[LayoutRecord]:
    """Layout records for every non-empty read, in alignment row order."""
    records = []
    for row, lane in enumerate(alignment):
        if lane.is_empty:
            continue
        records.append(LayoutRecord(
            read_name=lane.first_word,
            contig=read2contig.get(row),
            start=lane.start,
            end=lane.end,
            bases=lane.count_bases(),
        ))
    return records


def export_read_layout(
    alignment: Alignment,
    read2contig: Mapping[int, str],
    output_path: str | Path,
    fmt: Optional[LayoutFormat] = None,
    progress: Optional[ProgressContext] = None
) -> int:
    """
    Write per-read placement records.

    The formatter is chosen once, from `fmt` or else from the file name.

    Args:
        alignment: Alignment (in its current row order)
        read2contig: row index -> contig name for reads in accepted contigs
        output_path: Output file (.gz for gzip)
        fmt: Explicit format (default: inferred from output_path)
        progress: Progress context (one unit per read)

    Returns:
        Number of records written
    """
    output_path = Path(output_path)
    fmt = fmt or LayoutFormat.from_filename(output_path)
    formatter = get_layout_formatter(fmt)
    records = layout_records(alignment, read2contig)

    progress = progress or ProgressContext()
    progress.set_tasks("Export", "Writing read layout")
    progress.set_maximum(len(records))
    progress.set_progress(0)

    logger.info(f"Writing {fmt.value} read layout: {output_path}")
    with open_file(output_path, 'w') as w:
        w.write(formatter.header(alignment.name))
        for record in records:
            w.write(formatter.format(record))
            progress.increment_progress()

    progress.report_task_completed()
    return len(records)


def contig_name(header: str) -> str:
    """Contig name from its header ('>contig-3\\tlength=...' -> 'contig-3')."""
    stripped = header.strip().lstrip('>')
    parts = stripped.split()
    return parts[0] if parts else stripped


def build_read2contig(contigs: Iterable) -> Dict[int, str]:
    """Row index -> contig name for objects with .header and .read_ids."""
    read2contig = {}
    for contig in contigs:
        name = contig_name(contig.header)
        for read_id in contig.read_ids:
            read2contig[read_id] = name
    return read2contig

# ColumnWeaver v0.1.0
# Any usage is subject to this software's license.
