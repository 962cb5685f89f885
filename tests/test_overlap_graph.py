#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ColumnWeaver v0.1.0

Tests for overlap graph construction and containment detection.

Author: ColumnWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

import pytest

from columnweaver.assembly_core.overlap_graph_module import (
    ContainmentIndex,
    OverlapGraph,
    OverlapGraphBuilder,
    ReadInterval,
    build_overlap_graph,
    compute_intervals,
)
from columnweaver.io_utils.alignment_io import Alignment, Lane
from columnweaver.utils.progress import AssemblyCanceled, ProgressContext


def edge_set(graph):
    return {(e.source, e.target, e.overlap) for e in graph.iter_edges()}


def naive_graph(alignment, min_overlap):
    """All-pairs reference implementation (gap-free reads only)."""
    intervals = compute_intervals(alignment)
    container = {}
    for i, b in enumerate(intervals):
        for a in intervals[:i]:
            if a.contains(b):
                container[b.read_id] = a.read_id
                break
    nodes = [iv for iv in intervals if iv.read_id not in container]
    edges = set()
    for i, a in enumerate(nodes):
        for b in nodes[i + 1:]:
            overlap = min(a.end, b.end) - max(a.start, b.start)
            if overlap >= min_overlap:
                edges.add((a.read_id, b.read_id, overlap))
    return [iv.read_id for iv in nodes], edges, container


class TestChainScenario:
    """Three reads A=[0,10), B=[5,15), C=[12,20) with min_overlap 3."""

    def test_edges(self, chain_alignment):
        graph, names, containment = build_overlap_graph(chain_alignment, 3)

        assert edge_set(graph) == {(0, 1, 5), (1, 2, 3)}
        assert graph.get_overlap(0, 2) is None
        assert len(containment) == 0

    def test_nodes_and_names(self, chain_alignment):
        graph, names, _ = build_overlap_graph(chain_alignment, 3)

        assert graph.node_ids == [0, 1, 2]
        assert graph.get_number_of_nodes() == 3
        assert graph.get_number_of_edges() == 2
        assert names[0] == "A read_a description"

    def test_min_overlap_drops_short_edge(self, chain_alignment):
        graph, _, _ = build_overlap_graph(chain_alignment, 4)

        assert edge_set(graph) == {(0, 1, 5)}


class TestContainment:
    """Reads nested inside another read's span."""

    def test_contained_read_is_not_a_node(self, contained_alignment):
        graph, names, containment = build_overlap_graph(contained_alignment, 3)

        assert not graph.has_node(3)
        assert 3 not in names
        assert containment.contained_in(0) == [3]
        assert containment.container_of(3) == 0
        assert edge_set(graph) == {(0, 1, 5), (1, 2, 3)}

    def test_identical_spans_keep_first_row(self, make_alignment):
        alignment = make_alignment([("X", 4, 14), ("Y", 4, 14)])
        graph, _, containment = build_overlap_graph(alignment, 3)

        assert graph.node_ids == [0]
        assert containment.contained_in(0) == [1]

    def test_same_start_longer_read_contains(self, make_alignment):
        alignment = make_alignment([("short", 0, 6), ("long", 0, 12)])
        graph, _, containment = build_overlap_graph(alignment, 3)

        assert graph.node_ids == [1]
        assert containment.contained_in(1) == [0]

    def test_contained_in_exactly_one_container(self, random_alignment):
        alignment = random_alignment(num_reads=80, seed=3)
        graph, _, containment = build_overlap_graph(alignment, 3)

        listed = [r for _, reads in containment.items() for r in reads]
        assert len(listed) == len(set(listed))
        for read_id in listed:
            assert not graph.has_node(read_id)
            container = containment.container_of(read_id)
            assert graph.has_node(container)
            assert alignment.get_lane(container).start <= alignment.get_lane(read_id).start
            assert alignment.get_lane(read_id).end <= alignment.get_lane(container).end


class TestEdgeCases:
    """Empty input and degenerate reads."""

    def test_empty_alignment(self):
        graph, names, containment = build_overlap_graph(Alignment([]), 5)

        assert graph.get_number_of_nodes() == 0
        assert graph.get_number_of_edges() == 0
        assert names == {}
        assert len(containment) == 0

    def test_empty_blocks_skipped(self, make_alignment):
        alignment = make_alignment([("A", 0, 10), ("B", 5, 15)])
        alignment.add_lane(Lane(name="gaps", block="-----", offset=3))

        graph, names, containment = build_overlap_graph(alignment, 3)

        assert graph.node_ids == [0, 1]
        assert 2 not in containment

    def test_internal_gaps_do_not_count(self):
        alignment = Alignment([
            Lane(name="A", block="ACGTACGTAC", offset=0),
            Lane(name="B", block="AC--CGTTTT", offset=6),
        ])
        # Intersection is columns 6..9; B has gaps at columns 8 and 9
        graph, _, _ = build_overlap_graph(alignment, 1)

        assert edge_set(graph) == {(0, 1, 2)}

    def test_invalid_min_overlap(self):
        with pytest.raises(ValueError):
            OverlapGraphBuilder(0)


class TestGraphProperties:
    """Properties over randomized inputs."""

    @pytest.mark.parametrize("seed", [1, 2, 3, 11])
    def test_sweep_matches_all_pairs(self, random_alignment, seed):
        alignment = random_alignment(num_reads=70, seed=seed)
        graph, _, containment = build_overlap_graph(alignment, 4)
        nodes, edges, container = naive_graph(alignment, 4)

        assert graph.node_ids == nodes
        assert edge_set(graph) == edges
        assert {r: containment.container_of(r) for r in containment.all_contained()} == container

    def test_edge_set_monotone_in_min_overlap(self, random_alignment):
        alignment = random_alignment(num_reads=60, seed=5)
        previous = None
        for min_overlap in (1, 3, 6, 10, 20):
            edges = edge_set(build_overlap_graph(alignment, min_overlap)[0])
            if previous is not None:
                assert edges <= previous
            previous = edges

    def test_edges_point_forward(self, random_alignment):
        alignment = random_alignment(num_reads=60, seed=9)
        graph, _, _ = build_overlap_graph(alignment, 2)

        for edge in graph.iter_edges():
            assert alignment.get_lane(edge.source).start < alignment.get_lane(edge.target).start
            assert edge.overlap >= 2


class TestOverlapGraph:
    """Direct tests of the graph container."""

    def test_keeps_larger_overlap_per_pair(self):
        graph = OverlapGraph()
        graph.add_node(1)
        graph.add_node(2)
        graph.add_edge(1, 2, 5)
        graph.add_edge(2, 1, 8)

        assert graph.get_number_of_edges() == 1
        assert graph.get_overlap(2, 1) == 8
        assert graph.get_overlap(1, 2) is None

    def test_tie_goes_to_smaller_source(self):
        graph = OverlapGraph()
        graph.add_node(1)
        graph.add_node(2)
        graph.add_edge(2, 1, 5)
        graph.add_edge(1, 2, 5)

        assert [(e.source, e.target) for e in graph.iter_edges()] == [(1, 2)]

    def test_self_edge_rejected(self):
        graph = OverlapGraph()
        graph.add_node(1)
        with pytest.raises(ValueError):
            graph.add_edge(1, 1, 4)

    def test_containment_index_rejects_second_container(self):
        index = ContainmentIndex()
        index.add(0, 5)
        with pytest.raises(ValueError):
            index.add(1, 5)

    def test_interval_helpers(self):
        a = ReadInterval(0, 0, 10)
        b = ReadInterval(1, 10, 20)
        assert not a.overlaps(b)
        assert a.contains(ReadInterval(2, 3, 10))


class TestCancellation:
    """Cooperative cancellation."""

    def test_canceled_context_aborts_build(self, chain_alignment):
        progress = ProgressContext()
        progress.cancel()

        with pytest.raises(AssemblyCanceled):
            build_overlap_graph(chain_alignment, 3, progress)

    def test_progress_counts_reads(self, contained_alignment):
        progress = ProgressContext()
        build_overlap_graph(contained_alignment, 3, progress)

        assert progress.maximum == 4
        assert progress.progress == 4

# ColumnWeaver v0.1.0
# Any usage is subject to this software's license.
