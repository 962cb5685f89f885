#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ColumnWeaver v0.1.0

Contig builder: turns paths and singletons of the overlap graph into
majority-vote consensus contigs.

For every path (and then every singleton) the support set is the chain's reads
plus the reads each of them contains. Consensus is taken column by column over
the union span of the support set; gap characters never vote and ties go to
the lexicographically smallest base. A candidate is kept only if it passes the
min_reads / min_coverage / min_length filters.

Author: ColumnWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .overlap_graph_module import ContainmentIndex
from ..io_utils.alignment_io import Alignment, GAP_CODES
from ..utils.progress import ProgressContext

logger = logging.getLogger(__name__)


class InternalConsistencyError(RuntimeError):
    """Raised when contig construction meets a state that correct input cannot produce."""
    pass


@dataclass
class Contig:
    """
    An accepted consensus contig.

    Attributes:
        ordinal: 1-based acceptance number
        header: FASTA-style header line
        sequence: Consensus sequence (deletion columns removed)
        read_ids: Support set (path/singleton reads plus contained reads)
        start: First alignment column of the span
        end: One past the last alignment column of the span
        coverage: Mean depth = supporting bases / consensus length
    """
    ordinal: int
    header: str
    sequence: str
    read_ids: List[int] = field(default_factory=list)
    start: int = 0
    end: int = 0
    coverage: float = 0.0

    @property
    def length(self) -> int:
        return len(self.sequence)

    @property
    def num_reads(self) -> int:
        return len(self.read_ids)

    def as_pair(self) -> Tuple[str, str]:
        return self.header, self.sequence


@dataclass
class ConsensusResult:
    """Consensus of one support set before filtering."""
    sequence: str
    start: int
    end: int
    total_bases: int

    @property
    def coverage(self) -> float:
        return self.total_bases / len(self.sequence) if self.sequence else 0.0


def compute_consensus(alignment: Alignment, read_ids: Sequence[int]) -> ConsensusResult:
    """
    Majority-vote consensus over the union span of the given reads.

    Args:
        alignment: Alignment holding the reads
        read_ids: Support set (alignment row indices)

    Returns:
        ConsensusResult with the consensus and its span

    Raises:
        InternalConsistencyError: If read_ids is empty or a column inside the
            span is covered by none of the reads
    """
    if not read_ids:
        raise InternalConsistencyError("Support set resolved to zero reads")

    lanes = [alignment.get_lane(r) for r in read_ids]
    lanes = [lane for lane in lanes if not lane.is_empty]
    if not lanes:
        raise InternalConsistencyError(f"Support set {list(read_ids)} has no aligned bases")

    start = min(lane.start for lane in lanes)
    end = max(lane.end for lane in lanes)
    width = end - start

    # Depth of read intervals per column (gaps included), via a difference array
    depth = np.zeros(width + 1, dtype=np.int64)
    columns = []
    codes = []
    for lane in lanes:
        depth[lane.start - start] += 1
        depth[lane.end - start] -= 1
        lane_codes = lane.codes()
        is_base = ~np.isin(lane_codes, GAP_CODES)
        columns.append(np.nonzero(is_base)[0] + (lane.start - start))
        codes.append(lane_codes[is_base])
    depth = np.cumsum(depth)[:width]

    uncovered = np.flatnonzero(depth == 0)
    if uncovered.size:
        raise InternalConsistencyError(
            f"Column {start + int(uncovered[0])} inside span [{start}, {end}) "
            f"is not covered by any of reads {list(read_ids)}"
        )

    columns = np.concatenate(columns)
    codes = np.concatenate(codes)
    total_bases = int(codes.size)

    # Sorted alphabet, so argmax ties resolve to the smallest base
    alphabet = np.unique(codes)
    votes = np.zeros((width, alphabet.size), dtype=np.int64)
    np.add.at(votes, (columns, np.searchsorted(alphabet, codes)), 1)

    has_vote = votes.sum(axis=1) > 0
    winners = alphabet[np.argmax(votes, axis=1)][has_vote]
    sequence = winners.tobytes().decode('ascii')

    return ConsensusResult(sequence=sequence, start=start, end=end, total_bases=total_bases)


class ContigBuilder:
    """
    Build consensus contigs from paths, singletons and the containment index.

    Process:
    1. Resolve the support set of each path, then of each singleton
    2. Compute the column-wise majority consensus
    3. Apply min_reads / min_coverage / min_length filters
    4. Number and label accepted contigs in acceptance order
    5. (Optional) reorder alignment rows by contig membership
    """

    def __init__(
        self,
        paths: List[List[int]],
        singletons: List[int],
        containment: ContainmentIndex
    ):
        self.paths = paths
        self.singletons = singletons
        self.containment = containment
        self.contigs: List[Contig] = []
        self.stats = {
            'candidates': 0,
            'rejected_min_reads': 0,
            'rejected_min_coverage': 0,
            'rejected_min_length': 0,
            'contigs_built': 0,
            'reads_in_contigs': 0,
            'total_contig_length': 0,
            'n50': 0,
        }

    def support_set(self, members: Sequence[int]) -> List[int]:
        """Members followed, each in turn, by the reads they directly contain."""
        support = []
        for read_id in members:
            support.append(read_id)
            support.extend(self.containment.contained_in(read_id))
        return support

    def apply(
        self,
        alignment: Alignment,
        min_reads: int = 1,
        min_coverage: float = 0.0,
        min_length: int = 0,
        sort_alignment: bool = False,
        progress: Optional[ProgressContext] = None,
        alignment_number: Optional[int] = None,
    ) -> int:
        """
        Build and filter contigs.

        Args:
            alignment: Alignment the graph was built from
            min_reads: Minimum support-set size
            min_coverage: Minimum mean depth
            min_length: Minimum consensus length
            sort_alignment: Reorder alignment rows by contig membership
            progress: Progress/cancellation context (polled once per candidate)
            alignment_number: Optional prefix for contig names

        Returns:
            Number of accepted contigs

        Raises:
            AssemblyCanceled: If the progress context was canceled
            InternalConsistencyError: On an empty support set or uncovered column
        """
        progress = progress or ProgressContext()
        candidates = [list(path) for path in self.paths] + [[s] for s in self.singletons]

        progress.set_subtask("Building contigs")
        progress.set_maximum(len(candidates))
        progress.set_progress(0)

        self.contigs = []
        self.stats['candidates'] = len(candidates)

        for members in candidates:
            support = self.support_set(members)
            consensus = compute_consensus(alignment, support)
            coverage = consensus.coverage

            if len(support) < min_reads:
                self.stats['rejected_min_reads'] += 1
            elif coverage < min_coverage:
                self.stats['rejected_min_coverage'] += 1
            elif len(consensus.sequence) < min_length:
                self.stats['rejected_min_length'] += 1
            else:
                ordinal = len(self.contigs) + 1
                self.contigs.append(Contig(
                    ordinal=ordinal,
                    header=self.format_header(ordinal, len(support), coverage,
                                              len(consensus.sequence), alignment_number),
                    sequence=consensus.sequence,
                    read_ids=support,
                    start=consensus.start,
                    end=consensus.end,
                    coverage=coverage,
                ))
            progress.increment_progress()

        lengths = [c.length for c in self.contigs]
        self.stats['contigs_built'] = len(self.contigs)
        self.stats['reads_in_contigs'] = sum(c.num_reads for c in self.contigs)
        self.stats['total_contig_length'] = sum(lengths)
        self.stats['n50'] = self._calculate_n50(lengths)

        logger.info(
            f"Built {len(self.contigs)} contigs from {len(candidates)} candidates "
            f"(rejected: {self.stats['rejected_min_reads']} min_reads, "
            f"{self.stats['rejected_min_coverage']} min_coverage, "
            f"{self.stats['rejected_min_length']} min_length)"
        )

        if sort_alignment:
            self.sort_alignment_by_contigs(alignment)

        progress.report_task_completed()
        return len(self.contigs)

    @staticmethod
    def format_header(
        ordinal: int,
        num_reads: int,
        coverage: float,
        length: int,
        alignment_number: Optional[int] = None
    ) -> str:
        name = f"contig-{ordinal}" if alignment_number is None else f"contig-{alignment_number}.{ordinal}"
        return f">{name}\tlength={length}\treads={num_reads}\tcoverage={coverage:.2f}"

    def contig_row_order(self, alignment: Alignment) -> List[int]:
        """
        Row permutation grouping each contig's reads together.

        Contigs follow acceptance order; within a contig reads are ordered by
        start column then row. Reads in no accepted contig trail at the end in
        their original order.
        """
        order = []
        assigned = set()
        for contig in self.contigs:
            rows = sorted(set(contig.read_ids), key=lambda r: (alignment.get_lane(r).start, r))
            order.extend(rows)
            assigned.update(rows)
        order.extend(r for r in range(alignment.row_count) if r not in assigned)
        return order

    def sort_alignment_by_contigs(self, alignment: Alignment):
        """Permute alignment rows by contig membership (no reads added or dropped)."""
        order = self.contig_row_order(alignment)
        alignment.reorder(order)
        # Row indices changed, so stored read ids must follow
        new_index = {old: new for new, old in enumerate(order)}
        for contig in self.contigs:
            contig.read_ids = [new_index[r] for r in contig.read_ids]
        logger.info(f"Sorted {alignment.row_count} alignment rows by contig")

    def get_contigs(self) -> List[Tuple[str, str]]:
        return [contig.as_pair() for contig in self.contigs]

    def get_count_contigs(self) -> int:
        return len(self.contigs)

    def _calculate_n50(self, lengths: List[int]) -> int:
        """
        Calculate N50 statistic.

        Args:
            lengths: List of contig lengths

        Returns:
            N50 value
        """
        if not lengths:
            return 0

        sorted_lengths = sorted(lengths, reverse=True)
        target = sum(sorted_lengths) / 2

        cumulative = 0
        for length in sorted_lengths:
            cumulative += length
            if cumulative >= target:
                return length

        return 0

# ColumnWeaver v0.1.0
# Any usage is subject to this software's license.
