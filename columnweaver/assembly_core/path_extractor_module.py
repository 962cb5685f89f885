#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ColumnWeaver v0.1.0

Path extraction: greedy path cover of the overlap graph.

Author: ColumnWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from __future__ import annotations
import logging
from typing import List, Optional, Set, Tuple

from .overlap_graph_module import ContainmentIndex, OverlapGraph
from ..utils.progress import ProgressContext

logger = logging.getLogger(__name__)

# Ordered read ids along a chain of overlapping reads
Path = List[int]


class PathExtractor:
    """
    Partition graph nodes into maximal chains (paths) and singletons.

    Nodes are stored in start-sorted order, which is a topological order of
    the DAG, so the first unvisited node never has an unvisited predecessor.
    From that source the chain grows along the unvisited successor with the
    largest overlap (ties: smallest node id). Chains of one node are emitted
    as singletons, longer chains as paths.

    A singleton is a node with no edge into the unvisited part of the graph
    when it is reached. That covers isolated nodes and also nodes whose
    neighbours were all consumed by earlier chains; both go to `singletons`
    so that paths always hold two or more nodes and the two lists partition
    the node set.
    """

    def __init__(self, graph: OverlapGraph, containment: Optional[ContainmentIndex] = None):
        self.graph = graph
        self.containment = containment or ContainmentIndex()
        self.paths: List[Path] = []
        self.singletons: List[int] = []

    def apply(self, progress: Optional[ProgressContext] = None) -> Tuple[List[Path], List[int]]:
        """
        Compute the path cover.

        Args:
            progress: Progress/cancellation context (polled once per chain)

        Returns:
            (paths, singletons) in construction order

        Raises:
            AssemblyCanceled: If the progress context was canceled
        """
        progress = progress or ProgressContext()
        progress.set_subtask("Extracting paths")
        progress.set_maximum(self.graph.get_number_of_nodes())
        progress.set_progress(0)

        self.paths = []
        self.singletons = []
        visited: Set[int] = set()

        for node_id in self.graph.node_ids:
            if node_id in visited:
                continue
            chain = self._extend(node_id, visited)
            if len(chain) == 1:
                self.singletons.append(node_id)
            else:
                self.paths.append(chain)
            progress.increment_progress(len(chain))

        progress.report_task_completed()
        logger.info(
            f"Extracted {len(self.paths)} paths and {len(self.singletons)} singletons "
            f"({len(self.containment)} contained reads ride along with their containers)"
        )
        return self.paths, self.singletons

    def _extend(self, start: int, visited: Set[int]) -> Path:
        chain = [start]
        visited.add(start)
        current = start
        while True:
            best = None
            best_key = None
            for target in self.graph.successors(current):
                if target in visited:
                    continue
                key = (-self.graph.get_overlap(current, target), target)
                if best_key is None or key < best_key:
                    best, best_key = target, key
            if best is None:
                return chain
            chain.append(best)
            visited.add(best)
            current = best

    def get_paths(self) -> List[Path]:
        return self.paths

    def get_singletons(self) -> List[int]:
        return self.singletons


def extract_paths(
    graph: OverlapGraph,
    containment: Optional[ContainmentIndex] = None,
    progress: Optional[ProgressContext] = None
) -> Tuple[List[Path], List[int]]:
    """Convenience wrapper around PathExtractor."""
    return PathExtractor(graph, containment).apply(progress)

# ColumnWeaver v0.1.0
# Any usage is subject to this software's license.
