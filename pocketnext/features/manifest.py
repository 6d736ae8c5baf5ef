"""package.json edits: project name and PocketBase setup script pruning.

The manifest is the one file whose failure is fatal.  A manifest that exists
but cannot be parsed or written raises :class:`ManifestError`; a template
without a manifest is only warned about.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pocketnext.errors import ManifestError
from pocketnext.features.fileops import remove_path
from pocketnext.utils import load_json, print_warning, save_json

MANIFEST_NAME = "package.json"
SETUP_SCRIPTS = ("setup", "setup:db", "setup:admin")
SCRIPTS_DIR = "scripts"


def _read(path: Path) -> dict[str, Any] | None:
    if not path.is_file():
        print_warning(f"No {MANIFEST_NAME} found in {path.parent}")
        return None
    try:
        data = load_json(path)
    except (OSError, json.JSONDecodeError) as exc:
        raise ManifestError(f"Could not read {MANIFEST_NAME}: {exc}") from exc
    if "_root" in data and len(data) == 1:
        raise ManifestError(f"{MANIFEST_NAME} does not contain a JSON object")
    return data


def _write(data: dict[str, Any], path: Path) -> None:
    try:
        save_json(data, path)
    except OSError as exc:
        raise ManifestError(f"Could not write {MANIFEST_NAME}: {exc}") from exc


def update_manifest_name(root: Path, name: str) -> bool:
    """Set the manifest ``name``.  Returns ``False`` when there is no manifest."""
    path = Path(root) / MANIFEST_NAME
    data = _read(path)
    if data is None:
        return False
    data["name"] = name
    _write(data, path)
    return True


def prune_setup_scripts(root: Path) -> list[str]:
    """Drop the PocketBase setup scripts and the ``scripts/`` directory.

    Returns the script names that were removed from the manifest.
    """
    root = Path(root)
    path = root / MANIFEST_NAME
    removed: list[str] = []
    data = _read(path)
    if data is not None:
        scripts = data.get("scripts")
        if isinstance(scripts, dict):
            for key in SETUP_SCRIPTS:
                if key in scripts:
                    del scripts[key]
                    removed.append(key)
        if removed:
            _write(data, path)
    remove_path(root / SCRIPTS_DIR)
    return removed
