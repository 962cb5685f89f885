#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ColumnWeaver v0.1.0

Overlap graph construction from column-aligned reads.

Reads already share one column coordinate system, so an overlap is simply the
number of shared columns in which both reads carry a base. The builder:

1. Computes the [start, end) column interval of every non-empty read
2. Sorts reads by start ascending, end descending (containers first)
3. Records reads nested inside an earlier read in a ContainmentIndex
4. Adds a directed edge A -> B for every pair of non-contained reads whose
   overlap reaches min_overlap, A being the earlier-starting read

Edges only ever point from an earlier to a later start column, so the graph is
acyclic by construction. Non-contained reads taken in sort order have strictly
increasing starts AND ends, which is what makes the interval sweep below work.

Author: ColumnWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from __future__ import annotations
import bisect
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

import numpy as np

from ..io_utils.alignment_io import Alignment
from ..utils.progress import ProgressContext

logger = logging.getLogger(__name__)


# ============================================================================
#                           DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True)
class ReadInterval:
    """Column interval [start, end) covered by one read (read_id = alignment row)."""
    read_id: int
    start: int
    end: int

    @property
    def sort_key(self) -> Tuple[int, int, int]:
        return (self.start, -self.end, self.read_id)

    def overlaps(self, other: 'ReadInterval') -> bool:
        return self.start < other.end and other.start < self.end

    def contains(self, other: 'ReadInterval') -> bool:
        return self.start <= other.start and other.end <= self.end


@dataclass(frozen=True)
class OverlapEdge:
    """
    Directed overlap edge.

    Attributes:
        id: Stable edge identifier (insertion order)
        source: Earlier-starting read id
        target: Later-starting read id
        overlap: Number of shared columns where both reads carry a base
    """
    id: int
    source: int
    target: int
    overlap: int


@dataclass
class OverlapGraph:
    """
    Directed acyclic overlap graph over non-contained reads.

    Payloads live in explicit typed maps keyed by integer ids: node ids are
    alignment row indices, edge ids index into `edges`.

    Attributes:
        node_ids: Nodes in start-sorted (topological) order
        edges: edge_id -> OverlapEdge
        out_edges: node_id -> {target node: edge_id}
        in_edges: node_id -> {source node: edge_id}
    """
    node_ids: List[int] = field(default_factory=list)
    edges: Dict[int, OverlapEdge] = field(default_factory=dict)
    out_edges: Dict[int, Dict[int, int]] = field(default_factory=lambda: defaultdict(dict))
    in_edges: Dict[int, Dict[int, int]] = field(default_factory=lambda: defaultdict(dict))
    _node_set: set = field(default_factory=set, repr=False)
    _next_edge_id: int = field(default=0, repr=False)

    def add_node(self, node_id: int):
        if node_id in self._node_set:
            raise ValueError(f"Duplicate node: {node_id}")
        self._node_set.add(node_id)
        self.node_ids.append(node_id)

    def has_node(self, node_id: int) -> bool:
        return node_id in self._node_set

    def add_edge(self, source: int, target: int, overlap: int) -> OverlapEdge:
        """
        Add (or strengthen) the edge between two nodes.

        Only one edge is kept per unordered node pair: the one with the larger
        overlap, ties going to the smaller source id.
        """
        if source == target:
            raise ValueError(f"Self-overlap not allowed: {source}")
        if source not in self._node_set or target not in self._node_set:
            raise KeyError(f"Edge {source} -> {target} references unknown node")

        existing_id = self.out_edges[source].get(target, self.out_edges[target].get(source))
        if existing_id is not None:
            existing = self.edges[existing_id]
            better = (overlap, -source) > (existing.overlap, -existing.source)
            if not better:
                return existing
            self._remove_edge(existing)

        edge = OverlapEdge(self._next_edge_id, source, target, overlap)
        self._next_edge_id += 1
        self.edges[edge.id] = edge
        self.out_edges[source][target] = edge.id
        self.in_edges[target][source] = edge.id
        return edge

    def _remove_edge(self, edge: OverlapEdge):
        del self.edges[edge.id]
        del self.out_edges[edge.source][edge.target]
        del self.in_edges[edge.target][edge.source]

    def successors(self, node_id: int) -> List[int]:
        return list(self.out_edges.get(node_id, {}))

    def get_overlap(self, source: int, target: int) -> Optional[int]:
        edge_id = self.out_edges.get(source, {}).get(target)
        return None if edge_id is None else self.edges[edge_id].overlap

    def iter_edges(self) -> Iterator[OverlapEdge]:
        """Edges in ascending id order."""
        for edge_id in sorted(self.edges):
            yield self.edges[edge_id]

    def get_number_of_nodes(self) -> int:
        return len(self.node_ids)

    def get_number_of_edges(self) -> int:
        return len(self.edges)


class ContainmentIndex:
    """
    Maps a containing read to the reads nested inside its column interval.

    Each contained read appears under exactly one container (the first
    qualifying one in sort order). Containers are never contained themselves.
    """

    def __init__(self):
        self._contained: Dict[int, List[int]] = {}
        self._container_of: Dict[int, int] = {}

    def add(self, container: int, contained: int):
        if contained in self._container_of:
            raise ValueError(f"Read {contained} already contained in {self._container_of[contained]}")
        self._contained.setdefault(container, []).append(contained)
        self._container_of[contained] = container

    def contained_in(self, container: int) -> List[int]:
        """Reads contained in the given read, in sort order."""
        return list(self._contained.get(container, []))

    def container_of(self, read_id: int) -> Optional[int]:
        return self._container_of.get(read_id)

    def all_contained(self) -> List[int]:
        return list(self._container_of)

    def items(self):
        return self._contained.items()

    def __len__(self) -> int:
        return len(self._container_of)

    def __contains__(self, read_id: int) -> bool:
        return read_id in self._container_of


# ============================================================================
#                           GRAPH BUILDER
# ============================================================================

def compute_intervals(alignment: Alignment) -> List[ReadInterval]:
    """Column intervals of all non-empty reads, in sort order."""
    intervals = [
        ReadInterval(row, lane.start, lane.end)
        for row, lane in enumerate(alignment)
        if not lane.is_empty
    ]
    intervals.sort(key=lambda iv: iv.sort_key)
    return intervals


class OverlapGraphBuilder:
    """
    Build the overlap graph and containment index of an alignment.

    Uses an interval sweep: `active` holds the non-contained reads whose end
    lies beyond the current read's start. Because their ends increase with
    their starts, expired reads leave from the front and the first container
    of a read is found by bisecting the active ends.
    """

    def __init__(self, min_overlap: int = 20):
        """
        Initialize graph builder.

        Args:
            min_overlap: Minimum number of shared base columns for an edge
        """
        if min_overlap < 1:
            raise ValueError(f"min_overlap must be >= 1, got {min_overlap}")
        self.min_overlap = min_overlap
        self.graph = OverlapGraph()
        self.node2read_name: Dict[int, str] = {}
        self.containment = ContainmentIndex()
        self.stats = {
            'reads_input': 0,
            'reads_empty': 0,
            'reads_contained': 0,
            'nodes': 0,
            'edges': 0,
            'pairs_compared': 0,
        }

    def build(
        self,
        alignment: Alignment,
        progress: Optional[ProgressContext] = None
    ) -> Tuple[OverlapGraph, Dict[int, str], ContainmentIndex]:
        """
        Build the overlap graph.

        Args:
            alignment: Reads placed in a shared column coordinate system
            progress: Progress/cancellation context (polled once per read)

        Returns:
            (graph, node id -> display name, containment index)

        Raises:
            AssemblyCanceled: If the progress context was canceled
        """
        progress = progress or ProgressContext()
        self.graph = OverlapGraph()
        self.node2read_name = {}
        self.containment = ContainmentIndex()

        intervals = compute_intervals(alignment)
        self.stats['reads_input'] = alignment.row_count
        self.stats['reads_empty'] = alignment.row_count - len(intervals)

        progress.set_tasks("Assembly", "Building overlap graph")
        progress.set_maximum(len(intervals))
        progress.set_progress(0)

        masks: Dict[int, np.ndarray] = {}
        active: List[ReadInterval] = []
        active_ends: List[int] = []
        head = 0  # active[:head] have expired

        for interval in intervals:
            # Drop reads that end at or before this read's start
            while head < len(active) and active[head].end <= interval.start:
                masks.pop(active[head].read_id, None)
                head += 1
            if head > 1024 and head * 2 > len(active):
                active = active[head:]
                active_ends = active_ends[head:]
                head = 0

            # First active read (in sort order) reaching at least as far as this one
            pos = bisect.bisect_left(active_ends, interval.end, lo=head)
            if pos < len(active):
                container = active[pos]
                self.containment.add(container.read_id, interval.read_id)
                self.stats['reads_contained'] += 1
                progress.increment_progress()
                continue

            lane = alignment.get_lane(interval.read_id)
            self.graph.add_node(interval.read_id)
            self.node2read_name[interval.read_id] = lane.name
            masks[interval.read_id] = lane.base_mask()

            for earlier in active[head:]:
                self.stats['pairs_compared'] += 1
                overlap = self._shared_base_columns(earlier, interval, masks)
                if overlap >= self.min_overlap:
                    self.graph.add_edge(earlier.read_id, interval.read_id, overlap)

            active.append(interval)
            active_ends.append(interval.end)
            progress.increment_progress()

        progress.report_task_completed()
        self.stats['nodes'] = self.graph.get_number_of_nodes()
        self.stats['edges'] = self.graph.get_number_of_edges()
        logger.info(
            f"Overlap graph: {self.stats['nodes']} nodes, {self.stats['edges']} edges, "
            f"{self.stats['reads_contained']} contained reads, "
            f"{self.stats['reads_empty']} empty reads skipped"
        )
        return self.graph, self.node2read_name, self.containment

    @staticmethod
    def _shared_base_columns(
        a: ReadInterval,
        b: ReadInterval,
        masks: Dict[int, np.ndarray]
    ) -> int:
        """Columns in the intersection of a and b where both carry a base."""
        lo = max(a.start, b.start)
        hi = min(a.end, b.end)
        if hi <= lo:
            return 0
        mask_a = masks[a.read_id][lo - a.start:hi - a.start]
        mask_b = masks[b.read_id][lo - b.start:hi - b.start]
        return int(np.count_nonzero(mask_a & mask_b))

    def get_overlap_graph(self) -> OverlapGraph:
        return self.graph

    def get_node2read_name_map(self) -> Dict[int, str]:
        return self.node2read_name

    def get_containment_index(self) -> ContainmentIndex:
        return self.containment


def build_overlap_graph(
    alignment: Alignment,
    min_overlap: int,
    progress: Optional[ProgressContext] = None
) -> Tuple[OverlapGraph, Dict[int, str], ContainmentIndex]:
    """Convenience wrapper around OverlapGraphBuilder."""
    return OverlapGraphBuilder(min_overlap).build(alignment, progress)

# ColumnWeaver v0.1.0
# Any usage is subject to this software's license.
