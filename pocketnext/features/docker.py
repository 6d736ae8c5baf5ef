"""Deployment-platform and Docker file selection.

Both selections only ever remove or rename files the starter ships; nothing
is generated.  Docker rules run before deployment rules so that a Coolify
compose file can be promoted to the standard name before the deployment rule
for non-Coolify platforms removes the Coolify variant.
"""

from __future__ import annotations

from pathlib import Path

from pocketnext.config import DeploymentPlatform, DockerConfig
from pocketnext.features.fileops import remove_path, rename_path

VERCEL_CONFIG = "vercel.json"
COMPOSE_FILE = "docker-compose.yml"
COOLIFY_COMPOSE_FILE = "docker-compose.coolify.yml"
DOCKERFILES = ("Dockerfile", "Dockerfile.pocketbase")
DOCKERIGNORE = ".dockerignore"


class DockerConfigurator:
    """Applies the Docker flavour and deployment platform to a project tree."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def apply_docker(self, config: DockerConfig) -> None:
        if config is DockerConfig.NONE:
            for name in (COMPOSE_FILE, COOLIFY_COMPOSE_FILE, *DOCKERFILES, DOCKERIGNORE):
                remove_path(self.root / name)
        elif config is DockerConfig.STANDARD:
            remove_path(self.root / COOLIFY_COMPOSE_FILE)
        elif config is DockerConfig.COOLIFY:
            coolify = self.root / COOLIFY_COMPOSE_FILE
            if not coolify.exists():
                # nothing to promote; keep whatever standard compose exists
                return
            # delete before rename so the rename never collides
            remove_path(self.root / COMPOSE_FILE)
            rename_path(coolify, self.root / COMPOSE_FILE)

    def apply_deployment(self, platform: DeploymentPlatform) -> None:
        if platform is not DeploymentPlatform.VERCEL:
            remove_path(self.root / VERCEL_CONFIG)
        if platform is not DeploymentPlatform.COOLIFY:
            remove_path(self.root / COOLIFY_COMPOSE_FILE)
