"""Interactive questions, built on ``rich.prompt``.

Every question goes through :class:`Prompter` so the resolver can be driven
by a scripted prompter in tests.  Ctrl+C or end-of-input while a question is
open raises :class:`PromptCancelled`.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from rich.console import Console
from rich.prompt import Confirm, Prompt

from pocketnext.config import (
    DeploymentPlatform,
    DockerConfig,
    ImageLoader,
    Profile,
    ScriptsHandling,
    is_valid_version,
)
from pocketnext.options.profiles import DEFAULT_PROFILE, profile_choices
from pocketnext.pocketbase.versions import VersionRegistry
from pocketnext.template.registry import DEFAULT_TEMPLATE, template_choices
from pocketnext.utils import console as default_console

T = TypeVar("T")

Choice = tuple[str, str, str]
CUSTOM_VERSION = "custom"

FIELD_QUESTIONS: dict[str, tuple[str, list[Choice]]] = {
    "deployment_platform": (
        "Deployment platform:",
        [
            (DeploymentPlatform.VERCEL.value, "Vercel", "Optimized for Vercel deployment"),
            (DeploymentPlatform.COOLIFY.value, "Coolify", "Self-hosted with Coolify"),
            (DeploymentPlatform.STANDARD.value, "Standard", "Generic deployment configuration"),
        ],
    ),
    "docker_config": (
        "Docker config:",
        [
            (DockerConfig.STANDARD.value, "Standard", "Basic Docker setup"),
            (DockerConfig.COOLIFY.value, "Coolify", "Optimized for Coolify deployment"),
            (DockerConfig.NONE.value, "None", "No Docker configuration"),
        ],
    ),
    "image_loader": (
        "Image loader strategy:",
        [
            (ImageLoader.VERCEL.value, "Vercel Image Loader", "Optimized for Vercel hosting"),
            (ImageLoader.COOLIFY.value, "Coolify Image Loader", "Compatible with Coolify deployment"),
            (ImageLoader.WSRV.value, "wsrv.nl Image Service", "Third-party image optimization service"),
        ],
    ),
    "scripts_handling": (
        "How would you like to handle PocketBase setup scripts?",
        [
            (ScriptsHandling.KEEP.value, "Keep Scripts", "Keep scripts for manual setup"),
            (ScriptsHandling.RUN_AND_KEEP.value, "Run and Keep", "Run setup now and keep scripts"),
            (ScriptsHandling.RUN_AND_DELETE.value, "Run and Delete", "Run setup now and delete scripts"),
        ],
    ),
}

WORKFLOWS_QUESTION = "Include GitHub workflow files?"


class PromptCancelled(Exception):
    """The user aborted an interactive question."""


class Prompter:
    """Asks the create-project questions on a Rich console."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or default_console

    # -- Primitives --------------------------------------------------------

    def _guard(self, ask: Callable[[], T]) -> T:
        try:
            return ask()
        except (KeyboardInterrupt, EOFError) as exc:
            raise PromptCancelled() from exc

    def select(self, message: str, choices: list[Choice], default_index: int = 0) -> str:
        """Show a numbered list and return the chosen value."""
        self.console.print(f"\n> {message}")
        for idx, (_value, title, description) in enumerate(choices, 1):
            self.console.print(f"{idx}. [bold]{title}[/] - [dim]{description}[/]")
        answer = self._guard(
            lambda: Prompt.ask(
                "Enter the number of your choice",
                choices=[str(i) for i in range(1, len(choices) + 1)],
                default=str(default_index + 1),
                console=self.console,
            )
        )
        return choices[int(answer) - 1][0]

    def confirm(self, message: str, default: bool = False) -> bool:
        return self._guard(lambda: Confirm.ask(message, default=default, console=self.console))

    def text(self, message: str, default: str | None = None) -> str:
        if default is None:
            return self._guard(lambda: Prompt.ask(message, console=self.console))
        return self._guard(lambda: Prompt.ask(message, default=default, console=self.console))

    # -- Questions ---------------------------------------------------------

    def ask_project_path(self, default: str) -> str:
        answer = self.text("What is your project named?", default=default)
        return answer.strip() or default

    def confirm_existing_directory(self, path: Path) -> bool:
        return self.confirm(
            f"Directory {path} already exists and is not empty. Continue anyway?",
            default=False,
        )

    def ask_profile(self) -> Profile:
        choices = profile_choices()
        default_index = [value for value, _t, _d in choices].index(DEFAULT_PROFILE.value)
        return Profile(self.select("Project setup profile:", choices, default_index))

    def ask_template(self) -> str:
        choices = template_choices()
        default_index = [value for value, _t, _d in choices].index(DEFAULT_TEMPLATE)
        return self.select("Which template would you like to use?", choices, default_index)

    def ask_field(self, field: str, default: Any) -> Any:
        """Ask for one feature field; *default* is preselected."""
        if field == "include_github_workflows":
            return self.confirm(WORKFLOWS_QUESTION, default=bool(default))
        message, choices = FIELD_QUESTIONS[field]
        values = [value for value, _t, _d in choices]
        default_value = getattr(default, "value", default)
        default_index = values.index(default_value) if default_value in values else 0
        return self.select(message, choices, default_index)

    def ask_custom_version(self) -> str:
        """Ask until the answer matches ``x.y.z``."""
        while True:
            answer = self.text("Custom PocketBase version (x.y.z)").strip()
            if is_valid_version(answer):
                return answer
            self.console.print("[yellow]Format required: x.y.z[/yellow]")

    async def ask_pocketbase_version(self, registry: VersionRegistry) -> str:
        versions = await registry.get_versions()
        if versions.from_fallback:
            choices: list[Choice] = [
                (versions.stable, f"Default ({versions.stable})", "Fallback version (no internet connection)"),
            ]
            default_index = 0
        else:
            choices = [
                (versions.latest, f"Latest ({versions.latest})", "Most recent release from GitHub"),
                (versions.stable, f"Stable ({versions.stable})", "Recommended for production"),
            ]
            default_index = 1
        choices.append((CUSTOM_VERSION, "Custom version", "Specify a particular version"))

        selected = self.select("PocketBase version:", choices, default_index)
        if selected == CUSTOM_VERSION:
            return self.ask_custom_version()
        return selected
