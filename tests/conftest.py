"""Shared pytest fixtures for the PocketNext test suite.

Provides reusable fixtures for:
- A realistic starter template tree on disk
- Resolved project configurations
- Mock subprocess helpers
- Mocked ``httpx.AsyncClient`` instances
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from pocketnext.config import ProjectConfiguration


# ---------------------------------------------------------------------------
# Template tree
# ---------------------------------------------------------------------------

TEMPLATE_PACKAGE_JSON: dict[str, Any] = {
    "name": "pocketnext-template",
    "version": "0.1.0",
    "private": True,
    "scripts": {
        "dev": "next dev",
        "build": "next build",
        "lint": "next lint",
        "setup": "npm run setup:db && npm run setup:admin",
        "setup:db": "node scripts/setup-db.js",
        "setup:admin": "node scripts/setup-admin.js",
    },
    "dependencies": {"next": "15.0.0", "pocketbase": "0.21.0"},
}

NEXT_CONFIG = """import type { NextConfig } from "next";

const nextConfig: NextConfig = {
  images: {
    loader: "custom",
    loaderFile: "./loader-wsrv.ts",
  },
};

export default nextConfig;
"""

TEMPLATE_FILES: dict[str, str] = {
    "next.config.ts": NEXT_CONFIG,
    "loader-coolify.ts": "export default function coolifyLoader() {}\n",
    "loader-wsrv.ts": "export default function wsrvLoader() {}\n",
    "vercel.json": "{}\n",
    "docker-compose.yml": "services:\n  app: standard\n",
    "docker-compose.coolify.yml": "services:\n  app: coolify\n",
    "Dockerfile": "FROM node:20\n",
    "Dockerfile.pocketbase": "FROM alpine\n",
    ".dockerignore": "node_modules\n",
    ".env.example": "NEXT_PUBLIC_PB_URL=http://127.0.0.1:8090\nPB_VERSION=0.20.0\n",
    "scripts/setup-db.js": "console.log('setup db')\n",
    "scripts/setup-admin.js": "console.log('setup admin')\n",
    "src/app/page.tsx": "export default function Page() { return null }\n",
    ".github/workflows/deploy.yml": "name: Deploy\non: push\n",
    "node_modules/left-pad/index.js": "module.exports = 1\n",
    ".git/HEAD": "ref: refs/heads/main\n",
}


def build_template_tree(root: Path, files: dict[str, str] | None = None) -> Path:
    """Write a starter template under *root* and return *root*."""
    root.mkdir(parents=True, exist_ok=True)
    for relative, content in (files or TEMPLATE_FILES).items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    (root / "package.json").write_text(
        json.dumps(TEMPLATE_PACKAGE_JSON, indent=2) + "\n", encoding="utf-8"
    )
    return root


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    """A ``templates/default`` directory with every optional starter file."""
    return build_template_tree(tmp_path / "templates" / "default")


@pytest.fixture
def project_dir(tmp_path: Path, template_dir: Path) -> Path:
    """A materialized project: the template copied without caches."""
    import shutil

    target = tmp_path / "my-app"
    shutil.copytree(
        template_dir, target, ignore=shutil.ignore_patterns("node_modules", ".git")
    )
    return target


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@pytest.fixture
def make_config(tmp_path: Path):
    """Factory for ``ProjectConfiguration`` objects targeting ``tmp_path/my-app``.

    Usage:
        def test_x(make_config):
            config = make_config(docker_config="none")
    """
    def factory(**overrides: Any) -> ProjectConfiguration:
        values: dict[str, Any] = {"target_directory": tmp_path / "my-app", "yes": True}
        values.update(overrides)
        return ProjectConfiguration(**values)

    return factory


# ---------------------------------------------------------------------------
# Mock subprocess
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory


# ---------------------------------------------------------------------------
# Mock httpx
# ---------------------------------------------------------------------------

def make_response(payload: Any = None, status_code: int = 200) -> MagicMock:
    """A MagicMock standing in for an ``httpx.Response`` with a JSON body."""
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    response.raise_for_status = MagicMock()
    return response


@pytest.fixture
def http_response():
    """The :func:`make_response` factory, as a fixture."""
    return make_response


@pytest.fixture
def mock_http_client():
    """Factory for an ``httpx.AsyncClient`` replacement.

    Usage:
        def test_fetch(mock_http_client):
            client = mock_http_client(get=[make_response({...})])
            with patch("httpx.AsyncClient", return_value=client):
                ...
    """
    def factory(get: list[Any] | Exception | None = None) -> AsyncMock:
        client = AsyncMock()
        if isinstance(get, Exception):
            client.get = AsyncMock(side_effect=get)
        else:
            client.get = AsyncMock(side_effect=list(get or []))
        client.head = AsyncMock(return_value=make_response())
        client.__aenter__ = AsyncMock(return_value=client)
        client.__aexit__ = AsyncMock(return_value=False)
        return client

    return factory
