"""Template acquisition.

Resolves a template id to a ready-to-copy directory by trying an ordered list
of strategies until one produces a non-empty tree:

1. :class:`LocalStrategy` -- ``<cwd>/templates/<id>`` or the templates folder
   next to the installed package.
2. :class:`ArchiveStrategy` -- download the branch tarball and extract it.
3. :class:`GitSparseStrategy` -- shallow, blob-filtered sparse checkout.

Remote strategies work inside ``<cwd>/.pocketnext-temp``.  The locator never
deletes that directory; the caller collects :attr:`TemplateLocator.temp_roots`
and removes them once the run is over.
"""

from __future__ import annotations

import shutil
import tarfile
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path

import httpx
from pydantic import BaseModel

from pocketnext.config import Settings
from pocketnext.errors import TemplateResolutionError
from pocketnext.template.registry import best_branch_for, resolve_template_id
from pocketnext.utils import is_non_empty_dir, print_info, run_command

PACKAGE_ROOT = Path(__file__).resolve().parents[2]

SAMPLE_APP_DIRS = ("example", "sample", "my-app", "app")
RECONSTRUCT_FILES = (
    "package.json",
    ".gitignore",
    "README.md",
    "next.config.js",
    "next.config.mjs",
    "next.config.ts",
    "tsconfig.json",
)


class Provenance(str, Enum):
    LOCAL = "local"
    ARCHIVE = "downloaded-archive"
    GIT = "git-sparse-checkout"


class TemplateLocation(BaseModel):
    """A resolved, existing, non-empty template directory."""

    path: Path
    provenance: Provenance
    temp_root: Path | None = None


class TemplateFetchError(Exception):
    """Raised by a strategy that was applicable but failed."""


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


class LocateStrategy(ABC):
    """One tier of the template fallback chain."""

    name: str = "strategy"

    @abstractmethod
    async def attempt_locate(self, template_id: str) -> TemplateLocation | None:
        """Return a location, ``None`` if inapplicable, or raise ``TemplateFetchError``."""


class LocalStrategy(LocateStrategy):
    """Look for the template on disk; existence of the directory is enough."""

    name = "local"

    def __init__(self, search_roots: list[Path] | None = None) -> None:
        if search_roots is None:
            search_roots = [Path.cwd() / "templates", PACKAGE_ROOT / "templates"]
        self.search_roots = search_roots

    def candidates(self, template_id: str) -> list[Path]:
        return [root / template_id for root in self.search_roots]

    async def attempt_locate(self, template_id: str) -> TemplateLocation | None:
        for candidate in self.candidates(template_id):
            if candidate.is_dir():
                return TemplateLocation(path=candidate, provenance=Provenance.LOCAL)
        return None


class _RemoteStrategy(LocateStrategy):
    """Shared scratch-directory handling for the network strategies."""

    def __init__(self, settings: Settings, temp_root: Path | None = None) -> None:
        self.settings = settings
        self.temp_root = temp_root or settings.temp_root()
        self.used_temp_root = False

    def _scratch_dir(self, name: str) -> Path:
        self.used_temp_root = True
        scratch = self.temp_root / name
        if scratch.exists():
            shutil.rmtree(scratch)
        scratch.mkdir(parents=True)
        return scratch

    def _branch(self, template_id: str) -> str:
        return best_branch_for(template_id, self.settings.preferred_branch)


class ArchiveStrategy(_RemoteStrategy):
    """Download ``<branch>.tar.gz`` and locate ``templates/<id>`` inside it."""

    name = "archive"

    async def attempt_locate(self, template_id: str) -> TemplateLocation | None:
        branch = self._branch(template_id)
        url = self.settings.archive_url(branch)
        scratch = self._scratch_dir("archive")
        archive_path = scratch / "template.tar.gz"
        extract_dir = scratch / "extracted"

        print_info(f"Downloading template archive from {url}")
        try:
            await self._download(url, archive_path)
            _extract_stripped(archive_path, extract_dir)
        except (httpx.HTTPError, tarfile.TarError, OSError) as exc:
            raise TemplateFetchError(f"archive download failed: {exc}") from exc

        template_path = extract_dir / "templates" / template_id
        if not template_path.is_dir():
            template_path = _reconstruct_template(extract_dir, template_path)

        if not is_non_empty_dir(template_path):
            raise TemplateFetchError("template directory is empty after extraction")
        return TemplateLocation(
            path=template_path, provenance=Provenance.ARCHIVE, temp_root=self.temp_root
        )

    async def _download(self, url: str, destination: Path) -> None:
        timeout = httpx.Timeout(self.settings.download_timeout, connect=self.settings.network_timeout)
        headers = {"User-Agent": self.settings.user_agent}
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True, headers=headers) as client:
            async with client.stream("GET", url) as response:
                response.raise_for_status()
                with destination.open("wb") as fh:
                    async for chunk in response.aiter_bytes():
                        fh.write(chunk)


class GitSparseStrategy(_RemoteStrategy):
    """Sparse-checkout the ``templates`` folder of the template repository."""

    name = "git"

    async def attempt_locate(self, template_id: str) -> TemplateLocation | None:
        branch = self._branch(template_id)
        checkout = self._scratch_dir("checkout")
        # git clone wants a missing or empty destination
        checkout.rmdir()

        await _run_git(
            "clone",
            "--depth",
            "1",
            "--filter=blob:none",
            "--sparse",
            "--branch",
            branch,
            self.settings.git_url(),
            str(checkout),
            timeout=self.settings.command_timeout,
        )
        await _run_git("sparse-checkout", "set", "templates", cwd=checkout)

        template_path = checkout / "templates" / template_id
        if not template_path.is_dir():
            template_path = _search_one_level(checkout, template_id)
        if template_path is None or not is_non_empty_dir(template_path):
            raise TemplateFetchError("could not locate templates directory in repository")
        return TemplateLocation(
            path=template_path, provenance=Provenance.GIT, temp_root=self.temp_root
        )


# ---------------------------------------------------------------------------
# Locator
# ---------------------------------------------------------------------------


class TemplateLocator:
    """Iterates the strategy list until one yields a non-empty template tree."""

    def __init__(self, strategies: list[LocateStrategy]) -> None:
        self.strategies = strategies

    @classmethod
    def default(cls, settings: Settings) -> "TemplateLocator":
        """Local, then archive, then git sparse-checkout."""
        return cls([LocalStrategy(), ArchiveStrategy(settings), GitSparseStrategy(settings)])

    @property
    def temp_roots(self) -> list[Path]:
        """Scratch roots created by remote strategies during this run."""
        roots: list[Path] = []
        for strategy in self.strategies:
            if isinstance(strategy, _RemoteStrategy) and strategy.used_temp_root:
                if strategy.temp_root not in roots:
                    roots.append(strategy.temp_root)
        return roots

    async def locate(self, template_id: str) -> TemplateLocation:
        """Resolve *template_id* to a template directory.

        Unknown ids fall back to ``"default"`` with a warning.

        Raises:
            TemplateResolutionError: If every strategy was inapplicable or failed.
        """
        template_id = resolve_template_id(template_id)
        failures: list[str] = []

        for strategy in self.strategies:
            try:
                location = await strategy.attempt_locate(template_id)
            except (TemplateFetchError, OSError) as exc:
                failures.append(f"{strategy.name}: {exc}")
                continue
            if location is not None:
                return location

        detail = "; ".join(failures) if failures else "no strategy was applicable"
        raise TemplateResolutionError(
            f'Unable to obtain template "{template_id}" ({detail})'
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _run_git(*args: str, cwd: str | Path | None = None, timeout: int = 120) -> str:
    """Run a git command and return its stdout.

    Raises TemplateFetchError if the command exits with a non-zero code.
    """
    cmd = ["git", *args]
    returncode, stdout, stderr = await run_command(cmd, cwd=cwd, timeout=timeout)
    if returncode != 0:
        raise TemplateFetchError(
            f"git command failed (exit {returncode}): {' '.join(cmd)}\n{stderr}"
        )
    return stdout


def _extract_stripped(archive_path: Path, destination: Path) -> None:
    """Extract a GitHub tarball, dropping its single top-level directory."""
    destination.mkdir(parents=True, exist_ok=True)
    with tarfile.open(archive_path, "r:gz") as tar:
        members = []
        for member in tar.getmembers():
            parts = Path(member.name).parts
            if len(parts) <= 1:
                continue
            member.name = str(Path(*parts[1:]))
            members.append(member)
        tar.extractall(destination, members=members, filter="data")


def _reconstruct_template(extract_dir: Path, template_path: Path) -> Path:
    """Best-effort template tree for archives without ``templates/<id>``.

    Prefers a sample app directory; otherwise assembles ``src/`` plus the
    usual top-level project files.
    """
    template_path.mkdir(parents=True, exist_ok=True)

    for sample in SAMPLE_APP_DIRS:
        sample_dir = extract_dir / sample
        if sample_dir.is_dir():
            shutil.copytree(sample_dir, template_path, dirs_exist_ok=True)
            return template_path

    if (extract_dir / "src").is_dir():
        shutil.copytree(extract_dir / "src", template_path / "src", dirs_exist_ok=True)
    for filename in RECONSTRUCT_FILES:
        source = extract_dir / filename
        if source.is_file():
            shutil.copy2(source, template_path / filename)
    return template_path


def _search_one_level(root: Path, template_id: str) -> Path | None:
    for child in sorted(root.iterdir()):
        candidate = child / "templates" / template_id
        if child.is_dir() and candidate.is_dir():
            return candidate
    return None
