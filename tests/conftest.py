#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ColumnWeaver v0.1.0

Pytest configuration and shared fixtures.

Author: ColumnWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

import random

import pytest
from pathlib import Path
import tempfile
import shutil

from columnweaver.io_utils.alignment_io import Alignment, Lane

# 80 columns without long repeats; reads are exact substrings of it
REFERENCE = (
    "ACGTTGCAAGCTTACGGATCCAGTACGTAGGCTAACGT"
    "TTGACCATGCGATCGGTACAAGTCCGATGCATGCCTAG"
    "GATC"
)


@pytest.fixture
def reference():
    return REFERENCE


@pytest.fixture
def temp_output_dir():
    """Create temporary output directory for tests."""
    temp_dir = tempfile.mkdtemp(prefix="columnweaver_test_")
    yield Path(temp_dir)
    # Cleanup after test
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def make_alignment():
    """
    Factory: build an alignment from (name, start, end) spans.

    Each read is the reference substring [start, end) placed at column start.
    """
    def _make(spans, name="test_alignment"):
        lanes = [Lane(name=n, block=REFERENCE[s:e], offset=s) for n, s, e in spans]
        return Alignment(lanes, name=name)
    return _make


@pytest.fixture
def chain_alignment(make_alignment):
    """A=[0,10), B=[5,15), C=[12,20): one chain A -> B -> C."""
    return make_alignment([
        ("A read_a description", 0, 10),
        ("B", 5, 15),
        ("C", 12, 20),
    ])


@pytest.fixture
def contained_alignment(make_alignment):
    """Chain alignment plus D=[2,8) nested inside A (rows: A, B, C, D)."""
    return make_alignment([
        ("A", 0, 10),
        ("B", 5, 15),
        ("C", 12, 20),
        ("D", 2, 8),
    ])


@pytest.fixture
def random_alignment(make_alignment):
    """Factory: reproducible alignment of random reads over the reference."""
    def _make(num_reads=60, seed=7, min_len=5, max_len=30):
        rng = random.Random(seed)
        spans = []
        for i in range(num_reads):
            length = rng.randint(min_len, max_len)
            start = rng.randint(0, len(REFERENCE) - length)
            spans.append((f"r{i}", start, start + length))
        return make_alignment(spans, name=f"random_{seed}")
    return _make


@pytest.fixture
def aligned_fasta(tmp_path):
    """Gapped FASTA alignment file of the chain scenario plus a contained read."""
    width = 20
    rows = [
        ("A read_a", 0, 10),
        ("B read_b", 5, 15),
        ("C read_c", 12, 20),
        ("D read_d", 2, 8),
    ]
    path = tmp_path / "reads.aln.fasta"
    with open(path, "w") as f:
        for name, s, e in rows:
            f.write(f">{name}\n{'-' * s}{REFERENCE[s:e]}{'-' * (width - e)}\n")
    return path

# ColumnWeaver v0.1.0
# Any usage is subject to this software's license.
