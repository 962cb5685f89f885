"""
ColumnWeaver v0.1.0

Shared utilities: progress reporting and cooperative cancellation.
"""

from .progress import AssemblyCanceled, ProgressContext, TqdmProgress

__all__ = ["AssemblyCanceled", "ProgressContext", "TqdmProgress"]
