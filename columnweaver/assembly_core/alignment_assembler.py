#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ColumnWeaver v0.1.0

Alignment assembler: sequences overlap graph construction, path extraction
and contig building over one alignment, and writes the graph and contigs.

Author: ColumnWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, TextIO, Tuple

from .contig_builder_module import Contig, ContigBuilder
from .overlap_graph_module import ContainmentIndex, OverlapGraph, OverlapGraphBuilder
from .path_extractor_module import PathExtractor
from ..io_utils.alignment_io import Alignment
from ..io_utils.assembly_export import write_contigs, write_overlap_graph_gml
from ..utils.progress import AssemblyCanceled, ProgressContext

logger = logging.getLogger(__name__)


class AssemblyStatus(Enum):
    COMPLETED = "completed"
    CANCELED = "canceled"


@dataclass
class AssemblyResult:
    """
    Outcome of a full assembly run.

    A CANCELED result carries no contigs: a canceled run has no usable output.
    """
    status: AssemblyStatus
    contigs: List[Contig] = field(default_factory=list)
    graph_nodes: int = 0
    graph_edges: int = 0
    stats: Dict[str, int] = field(default_factory=dict)

    @property
    def contig_count(self) -> int:
        return len(self.contigs)

    @property
    def canceled(self) -> bool:
        return self.status is AssemblyStatus.CANCELED

    def get_contigs(self) -> List[Tuple[str, str]]:
        return [contig.as_pair() for contig in self.contigs]


class AlignmentAssembler:
    """
    Assemble contigs from an alignment.

    Usage:
        assembler = AlignmentAssembler()
        assembler.compute_overlap_graph(min_overlap, alignment, progress)
        count = assembler.compute_contigs(min_reads, min_coverage, min_length,
                                          sort_alignment, progress)
        assembler.write_contigs(stream, progress)
    """

    def __init__(self):
        self.alignment: Optional[Alignment] = None
        self.overlap_graph: Optional[OverlapGraph] = None
        self.node2read_name: Dict[int, str] = {}
        self.containment: Optional[ContainmentIndex] = None
        self.paths: List[List[int]] = []
        self.singletons: List[int] = []
        self.contigs: List[Contig] = []
        self.stats: Dict[str, int] = {}
        # Rows as they were when the graph was built; graph, paths and containment
        # keep using these row indices as read ids after the alignment is sorted
        self._graph_alignment: Optional[Alignment] = None
        # _row_order[i] is the read id currently sitting in row i of self.alignment
        self._row_order: List[int] = []

    def compute_overlap_graph(
        self,
        min_overlap: int,
        alignment: Alignment,
        progress: Optional[ProgressContext] = None
    ) -> OverlapGraph:
        """
        Compute the overlap graph and containment index.

        Raises:
            AssemblyCanceled: If the progress context was canceled
        """
        self.alignment = alignment
        builder = OverlapGraphBuilder(min_overlap)
        graph, node2read_name, containment = builder.build(alignment, progress)
        self.overlap_graph = graph
        self.node2read_name = node2read_name
        self.containment = containment
        self._graph_alignment = Alignment(list(alignment), name=alignment.name)
        self._row_order = list(range(alignment.row_count))
        self.paths = []
        self.singletons = []
        self.contigs = []
        self.stats = dict(builder.stats)
        return graph

    def write_overlap_graph(self, writer: TextIO) -> Tuple[int, int]:
        """
        Write the overlap graph as GML.

        Returns:
            (number of nodes, number of edges)
        """
        self._require_graph()
        return write_overlap_graph_gml(
            self.overlap_graph,
            {n: self._graph_alignment.get_lane(n) for n in self.overlap_graph.node_ids},
            writer,
            graph_label=self.alignment.name,
        )

    def compute_contigs(
        self,
        min_reads: int,
        min_coverage: float,
        min_length: int,
        sort_alignment_by_contigs: bool = False,
        progress: Optional[ProgressContext] = None,
        alignment_number: Optional[int] = None,
    ) -> int:
        """
        Extract paths and build contigs. Optionally sorts the alignment by contigs.

        Consensus is always taken over the rows the graph was built from, so
        repeated calls give the same contigs even after an earlier sort.
        Contig read ids refer to rows of the alignment in its current order.

        Returns:
            Number of accepted contigs

        Raises:
            AssemblyCanceled: If the progress context was canceled
            InternalConsistencyError: On inconsistent support sets
        """
        self._require_graph()
        progress = progress or ProgressContext()

        extractor = PathExtractor(self.overlap_graph, self.containment)
        self.paths, self.singletons = extractor.apply(progress)

        builder = ContigBuilder(self.paths, self.singletons, self.containment)
        count = builder.apply(
            self._graph_alignment,
            min_reads=min_reads,
            min_coverage=min_coverage,
            min_length=min_length,
            sort_alignment=False,
            progress=progress,
            alignment_number=alignment_number,
        )
        self.contigs = builder.contigs
        if sort_alignment_by_contigs:
            self._sort_alignment(builder.contig_row_order(self._graph_alignment))
        current_row = {read_id: row for row, read_id in enumerate(self._row_order)}
        for contig in self.contigs:
            contig.read_ids = [current_row[r] for r in contig.read_ids]

        self.stats.update(builder.stats)
        self.stats['paths'] = len(self.paths)
        self.stats['singletons'] = len(self.singletons)
        return count

    def _sort_alignment(self, order: List[int]):
        """Put the caller's alignment rows in `order` (given as graph read ids)."""
        current_row = {read_id: row for row, read_id in enumerate(self._row_order)}
        self.alignment.reorder([current_row[read_id] for read_id in order])
        self._row_order = list(order)
        logger.info(f"Sorted {self.alignment.row_count} alignment rows by contig")

    def get_contigs(self) -> List[Tuple[str, str]]:
        return [contig.as_pair() for contig in self.contigs]

    def get_count_contigs(self) -> int:
        return len(self.contigs)

    def write_contigs(self, writer: TextIO, progress: Optional[ProgressContext] = None) -> int:
        """Write contigs as header/sequence line pairs."""
        return write_contigs(self.get_contigs(), writer, progress)

    def run(
        self,
        alignment: Alignment,
        min_overlap: int = 20,
        min_reads: int = 2,
        min_coverage: float = 0.0,
        min_length: int = 0,
        sort_alignment_by_contigs: bool = False,
        progress: Optional[ProgressContext] = None,
        alignment_number: Optional[int] = None,
    ) -> AssemblyResult:
        """
        Run graph construction and contig building in one call.

        Cancellation is reported as an AssemblyResult with status CANCELED;
        every other error propagates.
        """
        progress = progress or ProgressContext()
        try:
            graph = self.compute_overlap_graph(min_overlap, alignment, progress)
            self.compute_contigs(
                min_reads, min_coverage, min_length,
                sort_alignment_by_contigs, progress, alignment_number,
            )
        except AssemblyCanceled as e:
            logger.warning(str(e))
            self.contigs = []
            return AssemblyResult(status=AssemblyStatus.CANCELED, stats=dict(self.stats))

        return AssemblyResult(
            status=AssemblyStatus.COMPLETED,
            contigs=list(self.contigs),
            graph_nodes=graph.get_number_of_nodes(),
            graph_edges=graph.get_number_of_edges(),
            stats=dict(self.stats),
        )

    def _require_graph(self):
        if self.overlap_graph is None:
            raise RuntimeError("Overlap graph not computed; call compute_overlap_graph() first")

# ColumnWeaver v0.1.0
# Any usage is subject to this software's license.
