"""Feature application orchestrator.

Turns a resolved :class:`ProjectConfiguration` into file-tree mutations over
a materialized project: Docker flavour, deployment platform, image loader and
GitHub workflows.  No network access happens here.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from pydantic import BaseModel, Field

from pocketnext.config import ProjectConfiguration
from pocketnext.features.docker import DockerConfigurator
from pocketnext.features.image_loader import ImageLoaderConfigurator
from pocketnext.features.templates import TemplateRenderer
from pocketnext.features.workflows import WorkflowInstaller


class AppliedFeatures(BaseModel):
    """What :meth:`FeatureApplicator.apply` left in the tree."""

    loader_file: Path | None = None
    workflow_files: list[Path] = Field(default_factory=list)
    steps: list[str] = Field(default_factory=list)


class FeatureApplicator:
    """Applies every feature rule to a project directory.

    Docker rules run before deployment rules: promoting the Coolify compose
    file has to happen before the non-Coolify deployment rule deletes it.
    """

    def __init__(self, renderer: TemplateRenderer | None = None) -> None:
        self.renderer = renderer or TemplateRenderer()

    # -- Public API --------------------------------------------------------

    def apply(
        self,
        target: str | Path,
        config: ProjectConfiguration,
        template_dir: Path | None = None,
        temp_roots: Iterable[Path] = (),
    ) -> AppliedFeatures:
        root = Path(target)
        result = AppliedFeatures()

        docker = DockerConfigurator(root)
        docker.apply_docker(config.docker_config)
        result.steps.append(f"docker: {config.docker_config.value}")
        docker.apply_deployment(config.deployment_platform)
        result.steps.append(f"deployment: {config.deployment_platform.value}")

        result.loader_file = ImageLoaderConfigurator(root).apply(config.image_loader)
        result.steps.append(f"image loader: {config.image_loader.value}")

        workflows = WorkflowInstaller(root, self.renderer)
        if config.include_github_workflows:
            result.workflow_files = workflows.include(
                config.package_manager, template_dir=template_dir, temp_roots=temp_roots
            )
            result.steps.append(f"workflows: {len(result.workflow_files)}")
        else:
            workflows.exclude()
            result.steps.append("workflows: none")

        return result
