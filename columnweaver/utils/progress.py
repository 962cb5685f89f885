#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ColumnWeaver v0.1.0

Progress reporting and cooperative cancellation shared by all assembly phases.

A single ProgressContext is handed down by reference through graph building,
path extraction and contig building. Long loops call increment_progress() and
check_canceled(); a cancel request is honoured at the next poll by raising
AssemblyCanceled, which the driver turns into a CANCELED result.

Author: ColumnWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from __future__ import annotations
import logging
import threading
from typing import Optional

from tqdm import tqdm

logger = logging.getLogger(__name__)


class AssemblyCanceled(Exception):
    """Raised when the caller asked a running assembly to stop."""

    def __init__(self, task: str = "", subtask: str = ""):
        self.task = task
        self.subtask = subtask
        where = f" during {task}: {subtask}" if task or subtask else ""
        super().__init__(f"Assembly canceled{where}")


class ProgressContext:
    """
    Silent progress/cancellation context.

    Tracks task labels and a counter against a maximum. Cancellation is
    backed by a threading.Event so that another thread may request a stop
    while the assembly loop polls for it.
    """

    def __init__(self):
        self.task = ""
        self.subtask = ""
        self.maximum = 0
        self.progress = 0
        self._cancel_event = threading.Event()

    def set_tasks(self, task: str, subtask: str = ""):
        """Set the phase label and its current subtask."""
        self.task = task
        self.subtask = subtask
        logger.debug(f"{task}: {subtask}")

    def set_subtask(self, subtask: str):
        self.subtask = subtask
        logger.debug(f"{self.task}: {subtask}")

    def set_maximum(self, maximum: int):
        self.maximum = max(0, int(maximum))

    def set_progress(self, value: int):
        self.progress = int(value)

    def increment_progress(self, n: int = 1):
        """Add n completed units and poll for cancellation."""
        self.progress += n
        self.check_canceled()

    def report_task_completed(self):
        self.progress = self.maximum

    def cancel(self):
        """Ask the running assembly to stop at its next poll."""
        self._cancel_event.set()

    def is_canceled(self) -> bool:
        return self._cancel_event.is_set()

    def check_canceled(self):
        """
        Raise AssemblyCanceled if a stop was requested.

        Raises:
            AssemblyCanceled: cancel() has been called
        """
        if self._cancel_event.is_set():
            raise AssemblyCanceled(self.task, self.subtask)

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class TqdmProgress(ProgressContext):
    """Progress context that renders the current subtask as a tqdm bar."""

    def __init__(self, leave: bool = False, disable: Optional[bool] = None):
        super().__init__()
        self.leave = leave
        self.disable = disable
        self._bar: Optional[tqdm] = None

    def _new_bar(self):
        if self._bar is not None:
            self._bar.close()
        self._bar = tqdm(
            total=self.maximum or None,
            desc=self.subtask or self.task,
            leave=self.leave,
            ncols=80,
            disable=self.disable,
        )

    def set_tasks(self, task: str, subtask: str = ""):
        super().set_tasks(task, subtask)
        self._new_bar()

    def set_subtask(self, subtask: str):
        super().set_subtask(subtask)
        self._new_bar()

    def set_maximum(self, maximum: int):
        super().set_maximum(maximum)
        if self._bar is None:
            self._new_bar()
        self._bar.reset(total=self.maximum or None)

    def set_progress(self, value: int):
        super().set_progress(value)
        if self._bar is not None:
            self._bar.n = self.progress
            self._bar.refresh()

    def increment_progress(self, n: int = 1):
        if self._bar is not None:
            self._bar.update(n)
        super().increment_progress(n)

    def report_task_completed(self):
        super().report_task_completed()
        if self._bar is not None:
            self._bar.n = self.progress
            self._bar.refresh()

    def close(self):
        if self._bar is not None:
            self._bar.close()
            self._bar = None

# ColumnWeaver v0.1.0
# Any usage is subject to this software's license.
