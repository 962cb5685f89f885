#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Alignment input for ColumnWeaver.

Holds the read-to-reference alignment consumed by the assembler:
- Lane: one aligned read (display name, column offset, aligned block)
- Alignment: ordered rows of lanes sharing one column coordinate system
- read_alignment(): load a gapped multiple alignment through Bio.AlignIO

Each lane stores only its aligned block (leading and trailing gaps stripped)
plus the column at which that block starts, so very wide alignments of short
reads stay small in memory.
"""

# =============================================================================
# SECTION 1: IMPORTS AND DEPENDENCIES
# =============================================================================

import gzip
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, TextIO, Union

import numpy as np
from Bio import AlignIO

logger = logging.getLogger(__name__)

GAP_CHARS = frozenset('-.')
GAP_CODES = np.frombuffer(''.join(sorted(GAP_CHARS)).encode('ascii'), dtype=np.uint8)


class AlignmentFormatError(ValueError):
    """Raised when alignment rows cannot be placed in one coordinate system."""
    pass


# =============================================================================
# SECTION 2: CORE ALIGNMENT DATA STRUCTURES
# =============================================================================

@dataclass
class Lane:
    """
    One aligned read.

    Attributes:
        name: Display name (full header/description of the read)
        block: Aligned text between the first and last base, gaps included
        offset: Column of the first character of block
    """
    name: str
    block: str
    offset: int = 0

    def __post_init__(self):
        # Strip flanking gaps so that offset always points at a base
        stripped = self.block.lstrip('-.')
        self.offset += len(self.block) - len(stripped)
        self.block = stripped.rstrip('-.')

    @property
    def is_empty(self) -> bool:
        return len(self.block) == 0

    @property
    def start(self) -> int:
        """First column holding a base."""
        return self.offset

    @property
    def end(self) -> int:
        """One past the last column holding a base."""
        return self.offset + len(self.block)

    @property
    def first_word(self) -> str:
        """First whitespace-delimited token of the display name."""
        parts = self.name.split()
        return parts[0] if parts else ""

    def codes(self) -> np.ndarray:
        """Upper-cased block as a uint8 array (one byte per column)."""
        return np.frombuffer(self.block.upper().encode('ascii'), dtype=np.uint8)

    def base_mask(self) -> np.ndarray:
        """Boolean array, True where the block carries a base."""
        return ~np.isin(self.codes(), GAP_CODES)

    def count_bases(self) -> int:
        return sum(1 for c in self.block if c not in GAP_CHARS)

    def char_at(self, column: int) -> Optional[str]:
        """Character at an alignment column, None outside the block."""
        if column < self.start or column >= self.end:
            return None
        return self.block[column - self.offset]


class Alignment:
    """
    Ordered collection of lanes placed in a shared column coordinate system.

    Row order is meaningful: it is the order reads are displayed and written,
    and reorder() is the only way to change it.
    """

    def __init__(self, lanes: Optional[Iterable[Lane]] = None, name: str = "alignment"):
        self.name = name
        self._lanes: List[Lane] = list(lanes) if lanes else []

    def __len__(self) -> int:
        return len(self._lanes)

    def __iter__(self):
        return iter(self._lanes)

    @property
    def row_count(self) -> int:
        return len(self._lanes)

    @property
    def width(self) -> int:
        """Number of columns spanned by the alignment."""
        return max((lane.end for lane in self._lanes if not lane.is_empty), default=0)

    def get_lane(self, row: int) -> Lane:
        return self._lanes[row]

    def add_lane(self, lane: Lane):
        self._lanes.append(lane)

    def reorder(self, order: Sequence[int]):
        """
        Permute rows so that new row i is old row order[i].

        Args:
            order: Permutation of range(row_count)

        Raises:
            ValueError: If order is not a permutation of the current rows
        """
        if sorted(order) != list(range(len(self._lanes))):
            raise ValueError(
                f"Row order must be a permutation of 0..{len(self._lanes) - 1}"
            )
        self._lanes = [self._lanes[i] for i in order]

    def to_rows(self) -> List[str]:
        """Full-width gapped text of every row."""
        width = self.width
        rows = []
        for lane in self._lanes:
            if lane.is_empty:
                rows.append('-' * width)
            else:
                rows.append('-' * lane.offset + lane.block + '-' * (width - lane.end))
        return rows

    @classmethod
    def from_rows(cls, rows: Iterable[tuple], name: str = "alignment") -> 'Alignment':
        """
        Build an alignment from (display name, gapped row text) pairs.

        Raises:
            AlignmentFormatError: If a row contains non-ASCII characters
        """
        lanes = []
        for display_name, text in rows:
            try:
                text.encode('ascii')
            except UnicodeEncodeError:
                raise AlignmentFormatError(f"Row '{display_name}' contains non-ASCII characters")
            lanes.append(Lane(name=display_name, block=text, offset=0))
        return cls(lanes, name=name)

    def __repr__(self) -> str:
        return f"Alignment(name={self.name!r}, rows={len(self._lanes)})"


# =============================================================================
# SECTION 3: FILE I/O
# =============================================================================

def is_gzipped(filepath: Union[str, Path]) -> bool:
    return str(filepath).endswith(('.gz', '.gzip'))


def open_file(filepath: Union[str, Path], mode: str = 'r') -> TextIO:
    """
    Open a text file, transparently handling gzip compression.

    Args:
        filepath: Path to file
        mode: 'r' or 'w'

    Returns:
        Text file handle
    """
    filepath = Path(filepath)
    if is_gzipped(filepath):
        return gzip.open(filepath, mode + 't')
    return open(filepath, mode)


def read_alignment(
    filepath: Union[str, Path],
    fmt: str = "fasta",
    name: Optional[str] = None
) -> Alignment:
    """
    Load a gapped multiple alignment.

    Args:
        filepath: Alignment file (can be gzipped)
        fmt: Any Bio.AlignIO format name ('fasta', 'clustal', 'stockholm', ...)
        name: Alignment name (default: file name without suffixes)

    Returns:
        Alignment with one lane per record, in file order

    Raises:
        FileNotFoundError: If the file does not exist
        AlignmentFormatError: If the records are not one rectangular alignment
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"Alignment file not found: {filepath}")

    if name is None:
        name = filepath.name.split('.')[0]

    logger.info(f"Reading {fmt} alignment: {filepath}")
    with open_file(filepath, 'r') as handle:
        try:
            msa = AlignIO.read(handle, fmt)
        except ValueError as e:
            raise AlignmentFormatError(f"Cannot parse alignment {filepath}: {e}") from e

    alignment = Alignment.from_rows(
        ((record.description or record.id, str(record.seq)) for record in msa),
        name=name,
    )
    logger.info(f"Loaded {alignment.row_count} rows, {alignment.width} columns")
    return alignment


def write_alignment(alignment: Alignment, filepath: Union[str, Path]):
    """Write the alignment as gapped FASTA, one line per row."""
    with open_file(filepath, 'w') as f:
        for lane, row in zip(alignment, alignment.to_rows()):
            f.write(f">{lane.name}\n{row}\n")

# ColumnWeaver v0.1.0
# Any usage is subject to this software's license.
