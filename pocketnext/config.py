"""PocketNext configuration.

Centralised, typed configuration for the create-project pipeline. Tool-level
knobs live in :class:`Settings`; the user's selections live in
:class:`ProjectConfiguration`.  Both are Pydantic v2 models so they are
validated at construction time and can be serialised to/from JSON without
boiler-plate.

Every selection field is a closed ``str`` enum.  Coercing an arbitrary string
into one of those enums never raises -- see :func:`coerce_choice`.
"""

from __future__ import annotations

import os
import re
from enum import Enum
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator

from pocketnext.utils import print_warning

FALLBACK_POCKETBASE_VERSION = "0.25.9"
VERSION_PATTERN = re.compile(r"^\d+\.\d+\.\d+$")


# ---------------------------------------------------------------------------
# Closed choice sets
# ---------------------------------------------------------------------------


class Profile(str, Enum):
    MINIMAL = "minimal"
    STANDARD = "standard"
    PRODUCTION = "production"
    CUSTOM = "custom"


class DeploymentPlatform(str, Enum):
    VERCEL = "vercel"
    COOLIFY = "coolify"
    STANDARD = "standard"


class DockerConfig(str, Enum):
    STANDARD = "standard"
    COOLIFY = "coolify"
    NONE = "none"


class ImageLoader(str, Enum):
    VERCEL = "vercel"
    COOLIFY = "coolify"
    WSRV = "wsrv"


class ScriptsHandling(str, Enum):
    KEEP = "keep"
    RUN_AND_KEEP = "runAndKeep"
    RUN_AND_DELETE = "runAndDelete"


class PackageManager(str, Enum):
    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"
    BUN = "bun"

    def install_command(self) -> list[str]:
        return [self.value, "install"]

    def script_command(self, script: str) -> list[str]:
        """Argument vector that runs a package.json script."""
        if self is PackageManager.NPM:
            return ["npm", "run", script]
        return [self.value, script]


E = TypeVar("E", bound=Enum)


def coerce_choice(value: Any, choices: type[E], default: E, label: str) -> E:
    """Return *value* as a member of *choices*, or *default* with a warning.

    Accepts enum members and their string values.  Anything else -- unknown
    strings, ``None``, other types -- is replaced by *default* and a warning
    naming *label* is printed.  Never raises.
    """
    if isinstance(value, choices):
        return value
    try:
        return choices(value)
    except (ValueError, TypeError):
        print_warning(f'Warning: Invalid {label} "{value}". Using "{default.value}" instead.')
        return default


def is_valid_version(value: Any) -> bool:
    """``True`` when *value* is an ``x.y.z`` version string."""
    return isinstance(value, str) and bool(VERSION_PATTERN.match(value))


# ---------------------------------------------------------------------------
# Hardcoded defaults used when neither a flag, a prompt nor a profile sets a field
# ---------------------------------------------------------------------------

FIELD_DEFAULTS: dict[str, Any] = {
    "deployment_platform": DeploymentPlatform.STANDARD,
    "docker_config": DockerConfig.STANDARD,
    "image_loader": ImageLoader.VERCEL,
    "include_github_workflows": False,
    "scripts_handling": ScriptsHandling.KEEP,
}

FIELD_CHOICES: dict[str, type[Enum]] = {
    "deployment_platform": DeploymentPlatform,
    "docker_config": DockerConfig,
    "image_loader": ImageLoader,
    "scripts_handling": ScriptsHandling,
}

FIELD_LABELS: dict[str, str] = {
    "deployment_platform": "deployment platform",
    "docker_config": "docker configuration",
    "image_loader": "image loader",
    "scripts_handling": "scripts handling",
    "template": "template",
    "profile": "project profile",
}


# ---------------------------------------------------------------------------
# Selection models
# ---------------------------------------------------------------------------


class PartialConfiguration(BaseModel):
    """Selections gathered so far.

    ``None`` means "not explicitly chosen".  Profile defaults and prompts only
    ever fill ``None`` fields, so an explicit value always wins.
    """

    target_directory: str | None = None
    template: str | None = None
    profile: Profile | None = None
    deployment_platform: DeploymentPlatform | None = None
    docker_config: DockerConfig | None = None
    image_loader: ImageLoader | None = None
    include_github_workflows: bool | None = None
    scripts_handling: ScriptsHandling | None = None
    pocketbase_version: str | None = None
    package_manager: PackageManager | None = None
    skip_install: bool = False
    yes: bool = False
    quick: bool = False
    debug: bool = False

    def unset_fields(self) -> list[str]:
        """Names of feature fields that are still ``None``."""
        return [name for name in FIELD_DEFAULTS if getattr(self, name) is None]


class ProjectConfiguration(BaseModel):
    """The fully resolved, read-only selection record consumed by every stage."""

    model_config = {"frozen": True}

    target_directory: Path
    template: str = Field(default="default")
    profile: Profile | None = None
    deployment_platform: DeploymentPlatform = DeploymentPlatform.STANDARD
    docker_config: DockerConfig = DockerConfig.STANDARD
    image_loader: ImageLoader = ImageLoader.VERCEL
    include_github_workflows: bool = False
    scripts_handling: ScriptsHandling = ScriptsHandling.KEEP
    pocketbase_version: str | None = None
    package_manager: PackageManager = PackageManager.NPM
    skip_install: bool = False
    yes: bool = False
    debug: bool = False

    @field_validator("target_directory", mode="before")
    @classmethod
    def _absolute_target(cls, value: Any) -> Path:
        if value is None or not str(value).strip():
            raise ValueError("target directory must not be empty")
        return Path(value).resolve()

    @field_validator("pocketbase_version")
    @classmethod
    def _version_format(cls, value: str | None) -> str | None:
        if value is not None and not is_valid_version(value):
            raise ValueError(f"PocketBase version must match x.y.z, got {value!r}")
        return value

    @property
    def project_name(self) -> str:
        """Basename of the target directory, used as the package name."""
        return self.target_directory.name

    def as_summary(self) -> dict[str, str]:
        """Return a ``{label: value}`` mapping for the summary table."""
        return {
            "Directory": str(self.target_directory),
            "Template": self.template,
            "Profile": self.profile.value if self.profile else "(none)",
            "Deployment": self.deployment_platform.value,
            "Docker": self.docker_config.value,
            "Image loader": self.image_loader.value,
            "GitHub workflows": "yes" if self.include_github_workflows else "no",
            "PocketBase scripts": self.scripts_handling.value,
            "PocketBase version": self.pocketbase_version or "(stable)",
            "Package manager": self.package_manager.value,
        }


# ---------------------------------------------------------------------------
# Tool settings
# ---------------------------------------------------------------------------


class Settings(BaseModel):
    """Tool-level settings: endpoints, timeouts and failure policy."""

    repository: str = Field(
        default="kacperkwapisz/pocketnext", description="GitHub owner/name hosting the templates"
    )
    archive_url_template: str = Field(
        default="https://github.com/{repository}/archive/refs/heads/{branch}.tar.gz"
    )
    git_url_template: str = Field(default="https://github.com/{repository}.git")
    temp_dir_name: str = Field(
        default=".pocketnext-temp", description="Per-run scratch directory under the cwd"
    )
    releases_api: str = Field(
        default="https://api.github.com/repos/pocketbase/pocketbase/releases"
    )
    connectivity_url: str = Field(default="https://registry.npmjs.org/npm")
    user_agent: str = Field(default="PocketNext-CLI")
    fallback_pocketbase_version: str = Field(default=FALLBACK_POCKETBASE_VERSION)
    version_cache_ttl: float = Field(default=300.0, ge=0, description="Seconds")
    network_timeout: float = Field(default=3.0, ge=1, description="Probe/API timeout in seconds")
    download_timeout: float = Field(default=60.0, ge=5)
    command_timeout: int = Field(default=600, ge=30, description="Subprocess timeout in seconds")
    canary: bool = Field(default=False, description="Prefer the canary branch for templates")
    install_failure_fatal: bool = Field(
        default=False, description="Abort (and clean up) when dependency install fails"
    )

    @property
    def preferred_branch(self) -> str:
        return "canary" if self.canary else "main"

    def archive_url(self, branch: str) -> str:
        return self.archive_url_template.format(repository=self.repository, branch=branch)

    def git_url(self) -> str:
        return self.git_url_template.format(repository=self.repository)

    def temp_root(self, cwd: Path | None = None) -> Path:
        return (cwd or Path.cwd()) / self.temp_dir_name

    @classmethod
    def from_env(cls) -> "Settings":
        """Build ``Settings`` from environment variables.

        Recognised variables (all optional):
            POCKETNEXT_REPOSITORY, POCKETNEXT_TEMP_DIR,
            POCKETNEXT_NETWORK_TIMEOUT, POCKETNEXT_INSTALL_FAILURE_FATAL,
            CANARY.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("POCKETNEXT_REPOSITORY"):
            kwargs["repository"] = os.environ["POCKETNEXT_REPOSITORY"]
        if os.environ.get("POCKETNEXT_TEMP_DIR"):
            kwargs["temp_dir_name"] = os.environ["POCKETNEXT_TEMP_DIR"]
        if os.environ.get("POCKETNEXT_NETWORK_TIMEOUT"):
            kwargs["network_timeout"] = os.environ["POCKETNEXT_NETWORK_TIMEOUT"]
        if os.environ.get("POCKETNEXT_INSTALL_FAILURE_FATAL"):
            kwargs["install_failure_fatal"] = _truthy(
                os.environ["POCKETNEXT_INSTALL_FAILURE_FATAL"]
            )
        kwargs["canary"] = os.environ.get("CANARY", "").lower() == "true"
        try:
            return cls(**kwargs)
        except ValidationError as exc:
            # Bad values fall back to their defaults instead of aborting.
            invalid = {str(error["loc"][0]) for error in exc.errors() if error["loc"]}
            print_warning(f"Ignoring invalid settings from environment: {', '.join(sorted(invalid))}")
            return cls(**{key: value for key, value in kwargs.items() if key not in invalid})


def _truthy(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "on"}
