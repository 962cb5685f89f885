"""
ColumnWeaver v0.1.0

I/O Module for ColumnWeaver.

1. alignment_io.py - Lane/Alignment structures, alignment reading and writing
2. assembly_export.py - Overlap graph (GML), contig and read layout export
"""

from .alignment_io import (
    GAP_CHARS,
    Alignment,
    AlignmentFormatError,
    Lane,
    open_file,
    read_alignment,
    write_alignment,
)

from .assembly_export import (
    # Graph export
    write_overlap_graph_gml,
    read_gml_counts,
    # Contig export
    write_contigs,
    write_contigs_fasta,
    # Read layout export
    LayoutFormat,
    LayoutRecord,
    TextLayoutFormatter,
    TabLayoutFormatter,
    export_read_layout,
    build_read2contig,
    contig_name,
)

__all__ = [
    "GAP_CHARS",
    "Alignment",
    "AlignmentFormatError",
    "Lane",
    "open_file",
    "read_alignment",
    "write_alignment",
    "write_overlap_graph_gml",
    "read_gml_counts",
    "write_contigs",
    "write_contigs_fasta",
    "LayoutFormat",
    "LayoutRecord",
    "TextLayoutFormatter",
    "TabLayoutFormatter",
    "export_read_layout",
    "build_read2contig",
    "contig_name",
]
