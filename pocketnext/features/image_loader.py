"""Image loader selection.

Starters ship one ``loader-<variant>.<ext>`` file per third-party loader.  The
selected variant is copied to the canonical ``loader.<ext>`` name and
``next.config.*`` is pointed at it.  Selecting ``vercel`` means Next.js' own
optimizer: no canonical file and no custom loader declaration.  Afterwards
every variant file is removed.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from pathlib import Path

from pocketnext.config import ImageLoader
from pocketnext.features.fileops import copy_file, remove_path
from pocketnext.utils import print_warning

CANONICAL_STEM = "loader"
VARIANT_PREFIX = "loader-"
NEXT_CONFIG_NAMES = ("next.config.ts", "next.config.js", "next.config.mjs")
PREFERRED_SUFFIXES = (".ts", ".tsx", ".js", ".mjs")

_LOADER_FILE_RE = re.compile(r"""(loaderFile\s*:\s*)(["'])[^"']*\2""")
_CUSTOM_LOADER_LINE_RE = re.compile(r"""^[ \t]*loader\s*:\s*["']custom["']\s*,?[^\n]*\n?""", re.M)
_LOADER_FILE_LINE_RE = re.compile(r"""^[ \t]*loaderFile\s*:[^\n]*\n?""", re.M)


def variant_files(root: Path) -> list[Path]:
    return sorted(p for p in root.glob(f"{VARIANT_PREFIX}*") if p.is_file())


def canonical_files(root: Path) -> list[Path]:
    return sorted(p for p in root.glob(f"{CANONICAL_STEM}.*") if p.is_file())


def find_variant(root: Path, loader: ImageLoader) -> Path | None:
    """Return the ``loader-<name>.*`` file for *loader*, preferring TypeScript."""
    candidates = [p for p in variant_files(root) if p.stem == f"{VARIANT_PREFIX}{loader.value}"]
    if not candidates:
        return None
    return min(candidates, key=_suffix_rank)


def _suffix_rank(path: Path) -> int:
    if path.suffix in PREFERRED_SUFFIXES:
        return PREFERRED_SUFFIXES.index(path.suffix)
    return len(PREFERRED_SUFFIXES)


def find_next_config(root: Path) -> Path | None:
    for name in NEXT_CONFIG_NAMES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None


def point_loader_at(config_text: str, canonical_name: str) -> str:
    """Rewrite any ``loaderFile`` declaration to ``./<canonical_name>``."""
    return _LOADER_FILE_RE.sub(lambda m: f"{m.group(1)}{m.group(2)}./{canonical_name}{m.group(2)}", config_text)


def drop_custom_loader(config_text: str) -> str:
    """Remove the ``loader: "custom"`` and ``loaderFile`` lines."""
    text = _CUSTOM_LOADER_LINE_RE.sub("", config_text)
    return _LOADER_FILE_LINE_RE.sub("", text)


class ImageLoaderConfigurator:
    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def apply(self, loader: ImageLoader) -> Path | None:
        """Install *loader* and return the canonical file, if one remains."""
        canonical: Path | None = None
        if loader is ImageLoader.VERCEL:
            for path in canonical_files(self.root):
                remove_path(path)
            self._rewrite_config(drop_custom_loader)
        else:
            canonical = self._install_variant(loader)

        for path in variant_files(self.root):
            remove_path(path)
        return canonical

    def _install_variant(self, loader: ImageLoader) -> Path | None:
        variant = find_variant(self.root, loader)
        if variant is None:
            print_warning(f"No {VARIANT_PREFIX}{loader.value} file in template; keeping existing image loader")
            existing = canonical_files(self.root)
            if not existing:
                return None
            kept = min(existing, key=_suffix_rank)
            for path in existing:
                if path != kept:
                    remove_path(path)
            return kept

        canonical = self.root / f"{CANONICAL_STEM}{variant.suffix}"
        # only one canonical loader may exist
        for path in canonical_files(self.root):
            if path != canonical:
                remove_path(path)
        if not copy_file(variant, canonical):
            return None
        self._rewrite_config(lambda text: point_loader_at(text, canonical.name))
        return canonical

    def _rewrite_config(self, transform: Callable[[str], str]) -> None:
        config_path = find_next_config(self.root)
        if config_path is None:
            return
        try:
            original = config_path.read_text(encoding="utf-8")
            updated = transform(original)
            if updated != original:
                config_path.write_text(updated, encoding="utf-8")
        except OSError as exc:
            print_warning(f"Could not update image loader in {config_path.name}: {exc}")
