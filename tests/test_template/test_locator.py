"""Unit tests for template acquisition (pocketnext.template.locator).

Tests cover:
- TemplateLocator fallback order and error aggregation
- LocalStrategy search order (existence only)
- ArchiveStrategy download/extract/reconstruct (httpx MockTransport)
- GitSparseStrategy clone commands and one-level search
- temp_roots bookkeeping
"""

from __future__ import annotations

import io
import tarfile
from pathlib import Path
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from pocketnext.config import Settings
from pocketnext.errors import TemplateResolutionError
from pocketnext.template.locator import (
    ArchiveStrategy,
    GitSparseStrategy,
    LocalStrategy,
    LocateStrategy,
    Provenance,
    TemplateFetchError,
    TemplateLocation,
    TemplateLocator,
)

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class RecordingStrategy(LocateStrategy):
    """Strategy returning a canned outcome and recording whether it ran."""

    def __init__(self, name: str, outcome: TemplateLocation | Exception | None) -> None:
        self.name = name
        self.outcome = outcome
        self.calls: list[str] = []

    async def attempt_locate(self, template_id: str) -> TemplateLocation | None:
        self.calls.append(template_id)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def make_tarball(path: Path, files: dict[str, str]) -> Path:
    with tarfile.open(path, "w:gz") as tar:
        for name, content in files.items():
            data = content.encode("utf-8")
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return path


def archive_client_factory(body: bytes, seen_urls: list[str], status_code: int = 200):
    """Build real ``httpx.AsyncClient`` objects backed by a MockTransport."""
    real_client = httpx.AsyncClient

    def handler(request: httpx.Request) -> httpx.Response:
        seen_urls.append(str(request.url))
        return httpx.Response(status_code, content=body)

    def factory(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    return factory


# ---------------------------------------------------------------------------
# TemplateLocator
# ---------------------------------------------------------------------------


class TestLocatorOrder:
    @pytest.mark.asyncio
    async def test_local_hit_skips_network_strategies(self, template_dir: Path):
        local = RecordingStrategy(
            "local", TemplateLocation(path=template_dir, provenance=Provenance.LOCAL)
        )
        archive = RecordingStrategy("archive", TemplateFetchError("should not run"))
        git = RecordingStrategy("git", TemplateFetchError("should not run"))

        location = await TemplateLocator([local, archive, git]).locate("default")

        assert location.provenance is Provenance.LOCAL
        assert archive.calls == []
        assert git.calls == []

    @pytest.mark.asyncio
    async def test_archive_success_skips_git(self, template_dir: Path):
        local = RecordingStrategy("local", None)
        archive = RecordingStrategy(
            "archive", TemplateLocation(path=template_dir, provenance=Provenance.ARCHIVE)
        )
        git = RecordingStrategy("git", None)

        location = await TemplateLocator([local, archive, git]).locate("default")

        assert location.provenance is Provenance.ARCHIVE
        assert local.calls == ["default"]
        assert git.calls == []

    @pytest.mark.asyncio
    async def test_archive_failure_falls_through_to_git(self, template_dir: Path):
        archive = RecordingStrategy("archive", TemplateFetchError("HTTP 404"))
        git = RecordingStrategy(
            "git", TemplateLocation(path=template_dir, provenance=Provenance.GIT)
        )

        location = await TemplateLocator([archive, git]).locate("default")

        assert location.provenance is Provenance.GIT
        assert git.calls == ["default"]

    @pytest.mark.asyncio
    async def test_all_failures_reported_once(self):
        strategies = [
            RecordingStrategy("local", None),
            RecordingStrategy("archive", TemplateFetchError("HTTP 404")),
            RecordingStrategy("git", OSError("disk full")),
        ]

        with pytest.raises(TemplateResolutionError) as info:
            await TemplateLocator(strategies).locate("default")

        message = str(info.value)
        assert "archive: HTTP 404" in message
        assert "git: disk full" in message
        assert len(info.value.remediation) == 3
        assert all(len(s.calls) == 1 for s in strategies)

    @pytest.mark.asyncio
    async def test_unknown_template_id_resolves_to_default(self, template_dir: Path):
        local = RecordingStrategy(
            "local", TemplateLocation(path=template_dir, provenance=Provenance.LOCAL)
        )
        with patch("pocketnext.template.registry.print_warning"):
            await TemplateLocator([local]).locate("does-not-exist")
        assert local.calls == ["default"]

    def test_default_chain(self):
        locator = TemplateLocator.default(Settings())
        assert [s.name for s in locator.strategies] == ["local", "archive", "git"]
        assert locator.temp_roots == []


# ---------------------------------------------------------------------------
# LocalStrategy
# ---------------------------------------------------------------------------


class TestLocalStrategy:
    @pytest.mark.asyncio
    async def test_first_existing_root_wins(self, tmp_path: Path):
        first = tmp_path / "first"
        second = tmp_path / "second"
        (first / "default").mkdir(parents=True)
        (second / "default").mkdir(parents=True)

        location = await LocalStrategy([first, second]).attempt_locate("default")

        assert location is not None
        assert location.path == first / "default"
        assert location.temp_root is None

    @pytest.mark.asyncio
    async def test_existence_is_enough(self, tmp_path: Path):
        (tmp_path / "templates" / "default").mkdir(parents=True)
        location = await LocalStrategy([tmp_path / "templates"]).attempt_locate("default")
        assert location is not None

    @pytest.mark.asyncio
    async def test_missing_is_inapplicable(self, tmp_path: Path):
        assert await LocalStrategy([tmp_path]).attempt_locate("default") is None

    def test_default_roots_start_with_cwd(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        strategy = LocalStrategy()
        assert strategy.candidates("default")[0] == tmp_path / "templates" / "default"


# ---------------------------------------------------------------------------
# ArchiveStrategy
# ---------------------------------------------------------------------------


class TestArchiveStrategy:
    @pytest.mark.asyncio
    async def test_downloads_and_extracts_template(self, tmp_path: Path):
        body = make_tarball(
            tmp_path / "src.tar.gz",
            {
                "pocketnext-main/templates/default/package.json": "{}",
                "pocketnext-main/templates/default/src/app/page.tsx": "x",
                "pocketnext-main/README.md": "readme",
            },
        ).read_bytes()
        seen: list[str] = []
        temp_root = tmp_path / ".pocketnext-temp"
        strategy = ArchiveStrategy(Settings(), temp_root=temp_root)

        with patch("httpx.AsyncClient", side_effect=archive_client_factory(body, seen)):
            location = await strategy.attempt_locate("default")

        assert location.provenance is Provenance.ARCHIVE
        assert location.temp_root == temp_root
        assert (location.path / "package.json").is_file()
        assert (location.path / "src" / "app" / "page.tsx").is_file()
        assert seen == [
            "https://github.com/kacperkwapisz/pocketnext/archive/refs/heads/main.tar.gz"
        ]
        assert strategy.used_temp_root is True

    @pytest.mark.asyncio
    async def test_canary_preferred_when_template_published_there(self, tmp_path: Path):
        body = make_tarball(
            tmp_path / "src.tar.gz", {"repo/templates/default/package.json": "{}"}
        ).read_bytes()
        seen: list[str] = []
        strategy = ArchiveStrategy(Settings(canary=True), temp_root=tmp_path / "tmp")

        with patch("httpx.AsyncClient", side_effect=archive_client_factory(body, seen)):
            await strategy.attempt_locate("default")

        assert seen[0].endswith("/canary.tar.gz")

    @pytest.mark.asyncio
    async def test_reconstructs_from_sample_app(self, tmp_path: Path):
        body = make_tarball(
            tmp_path / "src.tar.gz",
            {"repo/my-app/package.json": "{}", "repo/my-app/next.config.ts": "x"},
        ).read_bytes()
        strategy = ArchiveStrategy(Settings(), temp_root=tmp_path / "tmp")

        with patch("httpx.AsyncClient", side_effect=archive_client_factory(body, [])):
            location = await strategy.attempt_locate("default")

        assert (location.path / "next.config.ts").is_file()

    @pytest.mark.asyncio
    async def test_reconstructs_from_top_level_files(self, tmp_path: Path):
        body = make_tarball(
            tmp_path / "src.tar.gz",
            {
                "repo/src/app/page.tsx": "x",
                "repo/package.json": "{}",
                "repo/tsconfig.json": "{}",
                "repo/scripts/release.js": "x",
            },
        ).read_bytes()
        strategy = ArchiveStrategy(Settings(), temp_root=tmp_path / "tmp")

        with patch("httpx.AsyncClient", side_effect=archive_client_factory(body, [])):
            location = await strategy.attempt_locate("default")

        assert (location.path / "src" / "app" / "page.tsx").is_file()
        assert (location.path / "tsconfig.json").is_file()
        assert not (location.path / "scripts").exists()

    @pytest.mark.asyncio
    async def test_empty_result_is_failure(self, tmp_path: Path):
        body = make_tarball(tmp_path / "src.tar.gz", {"repo/LICENSE": "MIT"}).read_bytes()
        strategy = ArchiveStrategy(Settings(), temp_root=tmp_path / "tmp")

        with patch("httpx.AsyncClient", side_effect=archive_client_factory(body, [])):
            with pytest.raises(TemplateFetchError, match="empty"):
                await strategy.attempt_locate("default")

    @pytest.mark.asyncio
    async def test_http_error_is_fetch_error(self, tmp_path: Path):
        strategy = ArchiveStrategy(Settings(), temp_root=tmp_path / "tmp")

        with patch(
            "httpx.AsyncClient", side_effect=archive_client_factory(b"nope", [], status_code=404)
        ):
            with pytest.raises(TemplateFetchError, match="archive download failed"):
                await strategy.attempt_locate("default")

    @pytest.mark.asyncio
    async def test_corrupt_archive_is_fetch_error(self, tmp_path: Path):
        strategy = ArchiveStrategy(Settings(), temp_root=tmp_path / "tmp")

        with patch(
            "httpx.AsyncClient", side_effect=archive_client_factory(b"not a tarball", [])
        ):
            with pytest.raises(TemplateFetchError):
                await strategy.attempt_locate("default")


# ---------------------------------------------------------------------------
# GitSparseStrategy
# ---------------------------------------------------------------------------


class TestGitSparseStrategy:
    @pytest.mark.asyncio
    async def test_clone_and_sparse_checkout(self, tmp_path: Path):
        temp_root = tmp_path / "tmp"
        commands: list[list[str]] = []

        async def fake_run(cmd, cwd=None, timeout=600, env=None):
            commands.append(cmd)
            if cmd[1] == "clone":
                target = Path(cmd[-1]) / "templates" / "default"
                target.mkdir(parents=True)
                (target / "package.json").write_text("{}")
            return (0, "", "")

        strategy = GitSparseStrategy(Settings(), temp_root=temp_root)
        with patch("pocketnext.template.locator.run_command", side_effect=fake_run):
            location = await strategy.attempt_locate("default")

        assert location.provenance is Provenance.GIT
        assert location.temp_root == temp_root
        clone = commands[0]
        assert clone[:6] == ["git", "clone", "--depth", "1", "--filter=blob:none", "--sparse"]
        assert clone[clone.index("--branch") + 1] == "main"
        assert clone[-2] == "https://github.com/kacperkwapisz/pocketnext.git"
        assert commands[1] == ["git", "sparse-checkout", "set", "templates"]

    @pytest.mark.asyncio
    async def test_searches_one_level_down(self, tmp_path: Path):
        async def fake_run(cmd, cwd=None, timeout=600, env=None):
            if cmd[1] == "clone":
                target = Path(cmd[-1]) / "packages" / "templates" / "default"
                target.mkdir(parents=True)
                (target / "package.json").write_text("{}")
            return (0, "", "")

        strategy = GitSparseStrategy(Settings(), temp_root=tmp_path / "tmp")
        with patch("pocketnext.template.locator.run_command", side_effect=fake_run):
            location = await strategy.attempt_locate("default")

        assert location.path.parent.parent.name == "packages"

    @pytest.mark.asyncio
    async def test_clone_failure(self, tmp_path: Path):
        strategy = GitSparseStrategy(Settings(), temp_root=tmp_path / "tmp")
        with patch(
            "pocketnext.template.locator.run_command",
            new=AsyncMock(return_value=(128, "", "fatal: repository not found")),
        ):
            with pytest.raises(TemplateFetchError, match="repository not found"):
                await strategy.attempt_locate("default")

    @pytest.mark.asyncio
    async def test_missing_templates_directory(self, tmp_path: Path):
        async def fake_run(cmd, cwd=None, timeout=600, env=None):
            if cmd[1] == "clone":
                Path(cmd[-1]).mkdir(parents=True, exist_ok=True)
            return (0, "", "")

        strategy = GitSparseStrategy(Settings(), temp_root=tmp_path / "tmp")
        with patch("pocketnext.template.locator.run_command", side_effect=fake_run):
            with pytest.raises(TemplateFetchError, match="could not locate"):
                await strategy.attempt_locate("default")


class TestTempRoots:
    @pytest.mark.asyncio
    async def test_temp_root_reported_after_remote_attempt(self, tmp_path: Path):
        temp_root = tmp_path / ".pocketnext-temp"
        archive = ArchiveStrategy(Settings(), temp_root=temp_root)
        git = GitSparseStrategy(Settings(), temp_root=temp_root)
        locator = TemplateLocator([LocalStrategy([tmp_path / "none"]), archive, git])

        with patch(
            "httpx.AsyncClient", side_effect=archive_client_factory(b"", [], status_code=500)
        ), patch(
            "pocketnext.template.locator.run_command",
            new=AsyncMock(return_value=(128, "", "offline")),
        ):
            with pytest.raises(TemplateResolutionError):
                await locator.locate("default")

        assert locator.temp_roots == [temp_root]
