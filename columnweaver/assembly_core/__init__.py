"""
Assembly Core module for ColumnWeaver.

Graph-based contig assembly over column-aligned reads:
- Overlap graph construction with containment detection
- Greedy path cover of the overlap DAG
- Majority-vote consensus contig building
- AlignmentAssembler driver tying the three together
"""

from .overlap_graph_module import (
    ContainmentIndex,
    OverlapEdge,
    OverlapGraph,
    OverlapGraphBuilder,
    ReadInterval,
    build_overlap_graph,
    compute_intervals,
)

from .path_extractor_module import (
    PathExtractor,
    extract_paths,
)

from .contig_builder_module import (
    Contig,
    ContigBuilder,
    ConsensusResult,
    InternalConsistencyError,
    compute_consensus,
)

from .alignment_assembler import (
    AlignmentAssembler,
    AssemblyResult,
    AssemblyStatus,
)

__all__ = [
    # Driver
    "AlignmentAssembler",
    "AssemblyResult",
    "AssemblyStatus",
    # Graph
    "ContainmentIndex",
    "OverlapEdge",
    "OverlapGraph",
    "OverlapGraphBuilder",
    "ReadInterval",
    "build_overlap_graph",
    "compute_intervals",
    # Paths
    "PathExtractor",
    "extract_paths",
    # Contigs
    "Contig",
    "ContigBuilder",
    "ConsensusResult",
    "InternalConsistencyError",
    "compute_consensus",
]
