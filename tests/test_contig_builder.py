#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ColumnWeaver v0.1.0

Tests for consensus computation, contig filtering and alignment sorting.

Author: ColumnWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

import pytest

from columnweaver.assembly_core.contig_builder_module import (
    ContigBuilder,
    InternalConsistencyError,
    compute_consensus,
)
from columnweaver.assembly_core.overlap_graph_module import ContainmentIndex, build_overlap_graph
from columnweaver.assembly_core.path_extractor_module import extract_paths
from columnweaver.io_utils.alignment_io import Alignment, Lane
from columnweaver.utils.progress import AssemblyCanceled, ProgressContext


def build(alignment, min_overlap=3, **filters):
    graph, _, containment = build_overlap_graph(alignment, min_overlap)
    paths, singletons = extract_paths(graph, containment)
    builder = ContigBuilder(paths, singletons, containment)
    builder.apply(alignment, **filters)
    return builder


# ---------------------------------------------------------------------------
# Consensus
# ---------------------------------------------------------------------------

class TestConsensus:
    """Column-wise majority vote."""

    def test_majority_wins(self):
        alignment = Alignment([
            Lane("r1", "ACGT"),
            Lane("r2", "ACGT"),
            Lane("r3", "ATGA"),
        ])
        result = compute_consensus(alignment, [0, 1, 2])

        assert result.sequence == "ACGT"
        assert (result.start, result.end) == (0, 4)

    def test_tie_goes_to_smallest_base(self):
        alignment = Alignment([Lane("r1", "ACGT"), Lane("r2", "TCGA")])
        result = compute_consensus(alignment, [0, 1])

        assert result.sequence == "ACGA"

    def test_lower_case_votes_with_upper_case(self):
        alignment = Alignment([Lane("r1", "acgt"), Lane("r2", "ACGA"), Lane("r3", "ACGA")])
        result = compute_consensus(alignment, [0, 1, 2])

        assert result.sequence == "ACGA"

    def test_gaps_do_not_vote(self):
        alignment = Alignment([
            Lane("r1", "AC-T"),
            Lane("r2", "AC-T"),
            Lane("r3", "ACGT"),
        ])
        result = compute_consensus(alignment, [0, 1, 2])

        assert result.sequence == "ACGT"

    def test_all_gap_column_is_a_deletion(self):
        alignment = Alignment([Lane("r1", "AC-T"), Lane("r2", "AC-T")])
        result = compute_consensus(alignment, [0, 1])

        assert result.sequence == "ACT"
        assert result.total_bases == 6
        assert result.coverage == pytest.approx(2.0)

    def test_span_is_union_of_reads(self, chain_alignment, reference):
        result = compute_consensus(chain_alignment, [0, 1, 2])

        assert result.sequence == reference[0:20]
        assert (result.start, result.end) == (0, 20)

    def test_uncovered_column_fails_loudly(self, make_alignment):
        alignment = make_alignment([("A", 0, 10), ("B", 12, 20)])

        with pytest.raises(InternalConsistencyError):
            compute_consensus(alignment, [0, 1])

    def test_empty_support_set_fails(self, chain_alignment):
        with pytest.raises(InternalConsistencyError):
            compute_consensus(chain_alignment, [])


# ---------------------------------------------------------------------------
# Contig building
# ---------------------------------------------------------------------------

class TestContigBuilding:
    """Support sets, coverage and headers."""

    def test_chain_scenario_one_contig(self, chain_alignment, reference):
        builder = build(chain_alignment, min_reads=1)

        assert builder.get_count_contigs() == 1
        contig = builder.contigs[0]
        assert (contig.start, contig.end) == (0, 20)
        assert contig.sequence == reference[0:20]
        assert contig.read_ids == [0, 1, 2]
        # 10 + 10 + 8 bases over 20 columns
        assert contig.coverage == pytest.approx(1.4)

    def test_contained_read_counts_toward_support(self, contained_alignment):
        builder = build(contained_alignment, min_reads=4)

        assert builder.get_count_contigs() == 1
        contig = builder.contigs[0]
        assert contig.read_ids == [0, 3, 1, 2]
        # 10 + 6 + 10 + 8 bases over 20 columns
        assert contig.coverage == pytest.approx(1.7)

    def test_min_reads_without_contained_read_rejects(self, chain_alignment):
        builder = build(chain_alignment, min_reads=4)

        assert builder.get_count_contigs() == 0
        assert builder.stats['rejected_min_reads'] == 1

    def test_singleton_with_contained_reads(self, make_alignment, reference):
        alignment = make_alignment([("A", 0, 12), ("D", 3, 9), ("E", 30, 40)])
        builder = build(alignment, min_reads=2)

        assert builder.get_count_contigs() == 1
        assert builder.contigs[0].sequence == reference[0:12]
        assert builder.contigs[0].read_ids == [0, 1]

    def test_header_format(self, contained_alignment):
        builder = build(contained_alignment, min_reads=1)

        assert builder.contigs[0].header == ">contig-1\tlength=20\treads=4\tcoverage=1.70"

    def test_header_with_alignment_number(self, chain_alignment):
        builder = build(chain_alignment, min_reads=1, alignment_number=3)

        assert builder.contigs[0].header.startswith(">contig-3.1\t")

    def test_ordinals_follow_acceptance(self, make_alignment):
        alignment = make_alignment([
            ("A", 0, 10), ("B", 5, 15),   # path, 2 reads
            ("S", 40, 44),                # singleton, too short
            ("T", 50, 70),                # singleton
        ])
        builder = build(alignment, min_reads=1, min_length=8)

        assert [c.header.split('\t')[0] for c in builder.contigs] == [">contig-1", ">contig-2"]
        assert [c.read_ids for c in builder.contigs] == [[0, 1], [3]]

    def test_support_set_is_one_level(self):
        containment = ContainmentIndex()
        containment.add(0, 5)
        containment.add(0, 6)
        containment.add(2, 7)
        builder = ContigBuilder([[0, 2]], [], containment)

        assert builder.support_set([0, 2]) == [0, 5, 6, 2, 7]

    def test_n50_stat(self, make_alignment):
        alignment = make_alignment([("A", 0, 10), ("B", 20, 40), ("C", 50, 80)])
        builder = build(alignment, min_reads=1)

        assert builder.stats['total_contig_length'] == 60
        assert builder.stats['reads_in_contigs'] == 3
        assert builder.stats['n50'] == 30


class TestFilterMonotonicity:
    """Raising any threshold can only shrink the accepted set."""

    @pytest.mark.parametrize("key,values", [
        ("min_reads", [1, 2, 3, 5, 8]),
        ("min_coverage", [0.0, 1.0, 1.5, 2.5, 4.0]),
        ("min_length", [0, 10, 20, 35, 60]),
    ])
    def test_monotone(self, random_alignment, key, values):
        alignment = random_alignment(num_reads=60, seed=12)
        previous = None
        for value in values:
            builder = build(alignment, **{'min_reads': 1, key: value})
            accepted = {tuple(c.read_ids) for c in builder.contigs}
            if previous is not None:
                assert accepted <= previous
            previous = accepted


class TestDeterminism:
    """Identical inputs give identical contigs."""

    def test_idempotent(self, random_alignment):
        alignment = random_alignment(num_reads=60, seed=21)
        first = build(alignment, min_reads=1).get_contigs()
        second = build(alignment, min_reads=1).get_contigs()

        assert first == second
        assert len(first) > 0


class TestSortAlignment:
    """Reordering alignment rows by contig membership."""

    def test_rows_grouped_by_contig(self, make_alignment):
        alignment = make_alignment([
            ("X", 60, 70),   # singleton, rejected (1 read)
            ("B", 5, 15),
            ("A", 0, 10),
            ("Y", 40, 44),   # singleton, rejected
            ("D", 2, 8),     # contained in A
        ])
        builder = build(alignment, min_reads=2, sort_alignment=True)

        assert [lane.name for lane in alignment] == ["A", "D", "B", "X", "Y"]
        assert builder.contigs[0].read_ids == [0, 1, 2]

    def test_sort_is_a_permutation(self, random_alignment):
        alignment = random_alignment(num_reads=60, seed=30)
        before = sorted(lane.name for lane in alignment)
        build(alignment, min_reads=3, sort_alignment=True)

        assert sorted(lane.name for lane in alignment) == before

    def test_no_sort_leaves_rows(self, contained_alignment):
        build(contained_alignment, min_reads=1)

        assert [lane.name for lane in contained_alignment] == ["A", "B", "C", "D"]


class TestCancellation:
    """Cooperative cancellation between contigs."""

    def test_canceled(self, chain_alignment):
        graph, _, containment = build_overlap_graph(chain_alignment, 3)
        paths, singletons = extract_paths(graph, containment)
        progress = ProgressContext()
        progress.cancel()

        with pytest.raises(AssemblyCanceled):
            ContigBuilder(paths, singletons, containment).apply(chain_alignment, progress=progress)

# ColumnWeaver v0.1.0
# Any usage is subject to this software's license.
