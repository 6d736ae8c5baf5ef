"""Single-file operations used by the feature rules.

Every helper reports failure through a warning and a ``False`` return value
instead of raising, so one missing or locked optional file never aborts
feature application.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from pocketnext.utils import print_warning, safe_remove


def remove_path(path: Path) -> bool:
    """Delete a file or directory tree if present.  ``True`` if it is gone."""
    if not path.exists() and not path.is_symlink():
        return True
    return safe_remove(path)


def rename_path(source: Path, destination: Path) -> bool:
    if not source.exists():
        return False
    try:
        source.rename(destination)
    except OSError as exc:
        print_warning(f"Could not rename {source.name} to {destination.name}: {exc}")
        return False
    return True


def copy_file(source: Path, destination: Path) -> bool:
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, destination)
    except OSError as exc:
        print_warning(f"Could not copy {source.name} to {destination}: {exc}")
        return False
    return True


def copy_directory_contents(source: Path, destination: Path, pattern: str = "*") -> list[Path]:
    """Copy the entries of *source* matching *pattern* into *destination*.

    Returns the destination paths that were written.
    """
    written: list[Path] = []
    for entry in sorted(source.glob(pattern)):
        target = destination / entry.name
        if entry.is_dir():
            try:
                shutil.copytree(entry, target, dirs_exist_ok=True)
            except (OSError, shutil.Error) as exc:
                print_warning(f"Could not copy {entry.name}: {exc}")
                continue
            written.append(target)
        elif copy_file(entry, target):
            written.append(target)
    return written
