"""Copy a located template tree into the project directory."""

from __future__ import annotations

import shutil
from collections.abc import Callable
from pathlib import Path

from pocketnext.errors import MaterializationError
from pocketnext.utils import is_non_empty_dir, print_warning

EXCLUDED_NAMES = frozenset({"node_modules", ".git"})

CopyTree = Callable[[Path, Path], None]


def _ignore_excluded(directory: str, names: list[str]) -> set[str]:
    return {name for name in names if name in EXCLUDED_NAMES}


def bulk_copy(source: Path, target: Path) -> None:
    """Recursive overwrite-copy skipping every ``node_modules``/``.git`` segment."""
    shutil.copytree(source, target, dirs_exist_ok=True, ignore=_ignore_excluded)


class TreeMaterializer:
    """Copies a template into the target directory and verifies the result.

    The bulk copy is followed by a per-entry copy of the template's top-level
    children when the bulk copy leaves the target empty.  An empty target
    after both attempts is unrecoverable.
    """

    def __init__(self, copy_tree: CopyTree = bulk_copy) -> None:
        self.copy_tree = copy_tree

    def materialize(self, source_dir: Path, target_dir: Path) -> None:
        """Copy *source_dir* into *target_dir*.

        Raises:
            MaterializationError: If the source is missing or the target is
                still empty after the fallback copy.
        """
        source_dir = Path(source_dir)
        target_dir = Path(target_dir)
        if not source_dir.is_dir():
            raise MaterializationError(f"Template directory does not exist: {source_dir}")

        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            self.copy_tree(source_dir, target_dir)
        except (OSError, shutil.Error) as exc:
            raise MaterializationError(f"Error copying template files: {exc}") from exc

        if not target_dir.is_dir():
            raise MaterializationError(f"Project directory was not created: {target_dir}")
        if is_non_empty_dir(target_dir):
            return

        print_warning("Directory empty after copy, trying alternative copy method...")
        try:
            self._copy_children(source_dir, target_dir)
        except (OSError, shutil.Error) as exc:
            raise MaterializationError(f"Error copying template files: {exc}") from exc

        if not is_non_empty_dir(target_dir):
            raise MaterializationError("Failed to copy template files to project directory")

    @staticmethod
    def _copy_children(source_dir: Path, target_dir: Path) -> None:
        for entry in sorted(source_dir.iterdir()):
            if entry.name in EXCLUDED_NAMES:
                continue
            destination = target_dir / entry.name
            if entry.is_dir():
                shutil.copytree(entry, destination, dirs_exist_ok=True)
            else:
                shutil.copy2(entry, destination)
