"""Run the generated project's own PocketBase setup script.

The script (``setup:db`` in package.json) reads ``PB_VERSION`` from ``.env``
and downloads the matching PocketBase binary.  This module only writes that
key and invokes the script through the resolved package manager.
"""

from __future__ import annotations

import re
from pathlib import Path

from pocketnext.config import PackageManager, Settings, is_valid_version
from pocketnext.errors import SetupError
from pocketnext.pocketbase.versions import VersionRegistry
from pocketnext.utils import print_info, run_command

ENV_KEY = "PB_VERSION"
SETUP_SCRIPT = "setup:db"

_ENV_LINE_RE = re.compile(rf"^{ENV_KEY}=.*$", re.M)


def set_env_value(content: str, version: str) -> str:
    """Replace the ``PB_VERSION`` line in *content* or append one."""
    line = f"{ENV_KEY}={version}"
    if _ENV_LINE_RE.search(content):
        return _ENV_LINE_RE.sub(line, content, count=1)
    if content and not content.endswith("\n"):
        content += "\n"
    return f"{content}{line}\n"


def update_env_file(root: Path, version: str) -> Path:
    """Write ``PB_VERSION`` into ``<root>/.env``.

    An existing ``.env`` keeps every other line.  Without one, ``.env.example``
    is used as the starting content; without either a one-line ``.env`` is
    created.
    """
    root = Path(root)
    env_path = root / ".env"
    example_path = root / ".env.example"
    if env_path.is_file():
        content = env_path.read_text(encoding="utf-8")
    elif example_path.is_file():
        content = example_path.read_text(encoding="utf-8")
    else:
        content = ""
    env_path.write_text(set_env_value(content, version), encoding="utf-8")
    return env_path


class PocketBaseSetupRunner:
    """Provision PocketBase inside a freshly created project."""

    def __init__(self, settings: Settings | None = None, registry: VersionRegistry | None = None) -> None:
        self.settings = settings or Settings()
        self.registry = registry or VersionRegistry(self.settings)

    async def resolve_version(self, version: str | None) -> str:
        if version and is_valid_version(version):
            return version
        resolved = await self.registry.stable()
        return resolved if is_valid_version(resolved) else self.settings.fallback_pocketbase_version

    async def run(
        self, target: str | Path, package_manager: PackageManager, version: str | None = None
    ) -> str:
        """Write the version to ``.env`` and run the setup script.

        Returns:
            The PocketBase version that was provisioned.

        Raises:
            SetupError: If ``.env`` cannot be written or the script fails.
        """
        root = Path(target)
        resolved = await self.resolve_version(version)
        try:
            update_env_file(root, resolved)
        except OSError as exc:
            raise SetupError(f"Could not write .env: {exc}", command="") from exc

        cmd = package_manager.script_command(SETUP_SCRIPT)
        print_info(f"Setting up PocketBase {resolved}...")
        rc, _out, err = await run_command(cmd, cwd=root, timeout=self.settings.command_timeout)
        if rc != 0:
            raise SetupError(
                f"PocketBase setup failed (exit code {rc})",
                command=" ".join(cmd),
                returncode=rc,
                stderr=err,
            )
        return resolved
