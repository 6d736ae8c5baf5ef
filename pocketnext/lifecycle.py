"""Cleanup and interrupt handling for a create-project run.

A run moves from ``RUNNING`` to exactly one terminal state:

* ``SUCCEEDED`` -- the target directory is kept.
* ``FAILED`` -- the target is deleted only if this run created it.
* ``INTERRUPTED`` -- same conditional deletion, triggered by SIGINT/SIGTERM.

Temp directories registered by the template locator are removed on every
terminal transition.  Whether the target may be deleted is decided once, by
:meth:`DirectoryLifecycleState.capture`, before anything touches the disk.
"""

from __future__ import annotations

import asyncio
import signal
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from pocketnext.utils import print_info, print_warning, safe_remove, terminate_active_processes

HANDLED_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)


class RunState(str, Enum):
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    INTERRUPTED = "interrupted"


class DirectoryLifecycleState(BaseModel):
    """Whether the target directory existed before this run."""

    model_config = {"frozen": True}

    path: Path
    existed_before: bool
    was_non_empty: bool = False

    @classmethod
    def capture(cls, path: str | Path) -> "DirectoryLifecycleState":
        target = Path(path)
        existed = target.exists()
        non_empty = target.is_dir() and any(target.iterdir()) if existed else False
        return cls(path=target, existed_before=existed, was_non_empty=non_empty)

    @property
    def may_delete(self) -> bool:
        return not self.existed_before


class CleanupController:
    """Owns the terminal-state transition and the cleanup it implies."""

    def __init__(self, lifecycle: DirectoryLifecycleState) -> None:
        self.lifecycle = lifecycle
        self.state = RunState.RUNNING
        self.interrupted_by: int | None = None
        self._temp_dirs: list[Path] = []

    # ------------------------------------------------------------------
    # Temp directory tracking
    # ------------------------------------------------------------------

    def track_temp_dir(self, path: str | Path) -> None:
        candidate = Path(path)
        if candidate not in self._temp_dirs:
            self._temp_dirs.append(candidate)

    def track_temp_dirs(self, paths: Iterable[Path]) -> None:
        for path in paths:
            self.track_temp_dir(path)

    @property
    def temp_dirs(self) -> list[Path]:
        return list(self._temp_dirs)

    def cleanup_temp_dirs(self) -> None:
        for path in self._temp_dirs:
            safe_remove(path)
        self._temp_dirs.clear()

    # ------------------------------------------------------------------
    # Terminal transitions
    # ------------------------------------------------------------------

    def _transition(self, new_state: RunState) -> bool:
        if self.state is not RunState.RUNNING:
            return False
        self.state = new_state
        return True

    def succeed(self) -> None:
        if self._transition(RunState.SUCCEEDED):
            self.cleanup_temp_dirs()

    def fail(self) -> None:
        if self._transition(RunState.FAILED):
            self._discard_target()
            self.cleanup_temp_dirs()

    def interrupt(self, signum: int | None = None) -> None:
        if signum is not None:
            self.interrupted_by = signum
        if self._transition(RunState.INTERRUPTED):
            self._discard_target()
            self.cleanup_temp_dirs()

    @property
    def exit_code(self) -> int:
        """``128 + signal`` for interrupts, ``1`` for failures, else ``0``."""
        if self.state is RunState.INTERRUPTED:
            return 128 + (self.interrupted_by or signal.SIGINT)
        if self.state is RunState.FAILED:
            return 1
        return 0

    def _discard_target(self) -> None:
        target = self.lifecycle.path
        if self.lifecycle.may_delete:
            if target.exists():
                print_info(f"Cleaning up {target}...")
                safe_remove(target)
        else:
            print_warning(
                f"Warning: {target} existed before this run and was not removed; "
                "it may contain partially created files."
            )

    # ------------------------------------------------------------------
    # Signal handling
    # ------------------------------------------------------------------

    def _on_signal(self, signum: int, task: asyncio.Task[Any]) -> None:
        self.interrupted_by = signum
        terminate_active_processes()
        task.cancel()

    @contextmanager
    def signal_scope(self, task: asyncio.Task[Any] | None = None) -> Iterator["CleanupController"]:
        """Route SIGINT/SIGTERM to cancellation of *task* while the block runs.

        Handlers are removed on every exit path.  On platforms without
        ``loop.add_signal_handler`` the previous ``signal.signal`` handlers
        are saved and restored instead.
        """
        task = task or asyncio.current_task()
        if task is None:
            raise RuntimeError("signal_scope() needs a running task")
        loop = asyncio.get_running_loop()

        installed: list[signal.Signals] = []
        previous: dict[signal.Signals, Any] = {}
        for signum in HANDLED_SIGNALS:
            try:
                loop.add_signal_handler(signum, self._on_signal, int(signum), task)
                installed.append(signum)
            except (NotImplementedError, RuntimeError):
                previous[signum] = signal.signal(
                    signum,
                    lambda received, _frame: loop.call_soon_threadsafe(
                        self._on_signal, received, task
                    ),
                )
        try:
            yield self
        finally:
            for signum in installed:
                loop.remove_signal_handler(signum)
            for signum, handler in previous.items():
                signal.signal(signum, handler)
