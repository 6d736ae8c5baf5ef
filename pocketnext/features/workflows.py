"""GitHub workflow inclusion.

When workflows are wanted, ``.github/workflows`` is filled from the first
source directory that actually holds workflow files:

1. the located template's own ``.github/workflows``
2. any ``templates/<id>/.github/workflows`` inside a download's temp root
   (the template repository's own root workflows are never picked up)
3. the target's ``.github/workflows`` (already copied with the tree)

If none of them has a workflow, a minimal CI workflow is rendered from the
packaged ``ci.yml.j2``.  When workflows are not wanted ``.github`` is removed.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from pocketnext.config import PackageManager
from pocketnext.features.fileops import copy_directory_contents, remove_path
from pocketnext.features.templates import TemplateRenderer
from pocketnext.utils import ensure_dir, print_info, print_warning

WORKFLOWS_SUBPATH = Path(".github") / "workflows"
TEMP_ROOT_WORKFLOWS_GLOB = f"**/templates/*/{WORKFLOWS_SUBPATH.as_posix()}"
WORKFLOW_PATTERNS = ("*.yml", "*.yaml")
CI_TEMPLATE = "ci.yml.j2"
CI_FILENAME = "ci.yml"
NODE_VERSION = "20"

_INSTALL_COMMANDS = {
    PackageManager.NPM: "npm ci",
    PackageManager.YARN: "yarn install --frozen-lockfile",
    PackageManager.PNPM: "pnpm install --frozen-lockfile",
    PackageManager.BUN: "bun install",
}


def has_workflows(directory: Path) -> bool:
    if not directory.is_dir():
        return False
    return any(any(directory.glob(pattern)) for pattern in WORKFLOW_PATTERNS)


def ci_context(package_manager: PackageManager) -> dict[str, str]:
    """Template context for the synthesized CI workflow."""
    return {
        "package_manager": package_manager.value,
        "node_version": NODE_VERSION,
        "install_command": _INSTALL_COMMANDS[package_manager],
        "run_command": " ".join(package_manager.script_command("")).strip(),
    }


class WorkflowInstaller:
    def __init__(self, root: Path, renderer: TemplateRenderer | None = None) -> None:
        self.root = Path(root)
        self.renderer = renderer or TemplateRenderer()

    @property
    def workflows_dir(self) -> Path:
        return self.root / WORKFLOWS_SUBPATH

    def candidate_sources(
        self, template_dir: Path | None, temp_roots: Iterable[Path] = ()
    ) -> list[Path]:
        sources: list[Path] = []
        if template_dir is not None:
            sources.append(Path(template_dir) / WORKFLOWS_SUBPATH)
        for temp_root in temp_roots:
            sources.extend(sorted(Path(temp_root).glob(TEMP_ROOT_WORKFLOWS_GLOB)))
        sources.append(self.workflows_dir)
        return sources

    def include(
        self,
        package_manager: PackageManager,
        template_dir: Path | None = None,
        temp_roots: Iterable[Path] = (),
    ) -> list[Path]:
        """Populate ``.github/workflows`` and return the workflow files present."""
        try:
            ensure_dir(self.workflows_dir)
        except OSError as exc:
            print_warning(f"Could not create {WORKFLOWS_SUBPATH.as_posix()}: {exc}")
            return []

        for source in self.candidate_sources(template_dir, temp_roots):
            if not has_workflows(source):
                continue
            if source.resolve() != self.workflows_dir.resolve():
                for pattern in WORKFLOW_PATTERNS:
                    copy_directory_contents(source, self.workflows_dir, pattern)
            if has_workflows(self.workflows_dir):
                return self._present()

        print_info("No workflow templates found; generating a minimal CI workflow")
        try:
            self.renderer.render_to_file(
                CI_TEMPLATE, self.workflows_dir / CI_FILENAME, ci_context(package_manager)
            )
        except OSError as exc:
            print_warning(f"Could not write {CI_FILENAME}: {exc}")
        return self._present()

    def exclude(self) -> None:
        remove_path(self.root / ".github")

    def _present(self) -> list[Path]:
        found: list[Path] = []
        for pattern in WORKFLOW_PATTERNS:
            found.extend(self.workflows_dir.glob(pattern))
        return sorted(found)
