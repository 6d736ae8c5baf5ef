"""Project profiles: named bundles of feature defaults."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from pocketnext.config import (
    DeploymentPlatform,
    DockerConfig,
    ImageLoader,
    PartialConfiguration,
    Profile,
    ScriptsHandling,
)


class ProfileInfo(BaseModel):
    id: Profile
    name: str
    description: str
    features: dict[str, Any] = Field(default_factory=dict)


PROFILES: dict[Profile, ProfileInfo] = {
    Profile.MINIMAL: ProfileInfo(
        id=Profile.MINIMAL,
        name="Minimal",
        description="Basic setup with essential features only",
        features={
            "deployment_platform": DeploymentPlatform.STANDARD,
            "docker_config": DockerConfig.NONE,
            "image_loader": ImageLoader.WSRV,
            "include_github_workflows": False,
            "scripts_handling": ScriptsHandling.KEEP,
        },
    ),
    Profile.STANDARD: ProfileInfo(
        id=Profile.STANDARD,
        name="Standard",
        description="Recommended setup for most projects",
        features={
            "deployment_platform": DeploymentPlatform.VERCEL,
            "docker_config": DockerConfig.STANDARD,
            "image_loader": ImageLoader.VERCEL,
            "include_github_workflows": True,
            "scripts_handling": ScriptsHandling.RUN_AND_KEEP,
        },
    ),
    Profile.PRODUCTION: ProfileInfo(
        id=Profile.PRODUCTION,
        name="Production",
        description="Full setup with CI/CD and deployment configuration",
        features={
            "deployment_platform": DeploymentPlatform.COOLIFY,
            "docker_config": DockerConfig.COOLIFY,
            "image_loader": ImageLoader.COOLIFY,
            "include_github_workflows": True,
            "scripts_handling": ScriptsHandling.RUN_AND_DELETE,
        },
    ),
    Profile.CUSTOM: ProfileInfo(
        id=Profile.CUSTOM,
        name="Custom",
        description="Choose each option individually",
    ),
}

DEFAULT_PROFILE = Profile.STANDARD


def profile_choices() -> list[tuple[str, str, str]]:
    """``(value, title, description)`` tuples for the profile prompt."""
    return [(info.id.value, info.name, info.description) for info in PROFILES.values()]


def apply_profile(partial: PartialConfiguration, profile: Profile) -> PartialConfiguration:
    """Fill the fields *partial* leaves unset from *profile*'s feature table.

    Explicit values are never overwritten.  ``custom`` fills nothing; those
    fields are left for prompts or hardcoded defaults.
    """
    updates: dict[str, Any] = {"profile": profile}
    for key, value in PROFILES[profile].features.items():
        if getattr(partial, key) is None:
            updates[key] = value
    return partial.model_copy(update=updates)
