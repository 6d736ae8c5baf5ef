"""PocketNext create-project pipeline.

Runs the stages of a project creation in order, each on the filesystem state
the previous one left behind:

1. LOCATE      -- resolve the template to a directory (local, archive, git).
2. MATERIALIZE -- copy it into the target directory.
3. FEATURES    -- apply Docker, deployment, image-loader and workflow rules.
4. MANIFEST    -- set the package name.
5. POCKETBASE  -- optionally run the setup script and prune it afterwards.
6. INSTALL     -- install dependencies with the resolved package manager.

Only this module decides cleanup and exit status.

Usage::

    pocketnext my-app
    pocketnext my-app --profile production -y
"""

from __future__ import annotations

import asyncio
import sys
import time
from pathlib import Path

from pydantic import BaseModel
from rich.panel import Panel

from pocketnext import __version__
from pocketnext.config import ProjectConfiguration, ScriptsHandling, Settings
from pocketnext.errors import InstallError, PocketNextError
from pocketnext.features import (
    AppliedFeatures,
    FeatureApplicator,
    prune_setup_scripts,
    update_manifest_name,
)
from pocketnext.lifecycle import CleanupController, DirectoryLifecycleState, RunState
from pocketnext.options import PromptCancelled, parse_cli_options, resolve_configuration
from pocketnext.pocketbase import PocketBaseSetupRunner
from pocketnext.template import Provenance, TemplateLocator, TreeMaterializer
from pocketnext.utils import (
    console,
    create_progress,
    format_duration,
    print_banner,
    print_remediation,
    print_success,
    print_summary_table,
    print_warning,
    run_command,
)


class PipelineResult(BaseModel):
    """What a finished run produced."""

    provenance: Provenance | None = None
    features: AppliedFeatures | None = None
    pocketbase_version: str | None = None
    scripts_run: bool = False
    installed: bool = False
    duration: float = 0.0


# ---------------------------------------------------------------------------
# Pipeline Orchestrator
# ---------------------------------------------------------------------------


class CreateProjectPipeline:
    """Drives one project creation from template lookup to dependency install.

    Attributes:
        config: The resolved, read-only project configuration.
        settings: Tool-level settings (endpoints, timeouts, failure policy).
        result: Filled in as stages complete.
        controller: Cleanup controller of the current run, once started.
    """

    def __init__(
        self,
        config: ProjectConfiguration,
        settings: Settings | None = None,
        locator: TemplateLocator | None = None,
        materializer: TreeMaterializer | None = None,
        applicator: FeatureApplicator | None = None,
        setup_runner: PocketBaseSetupRunner | None = None,
    ) -> None:
        self.config = config
        self.settings = settings or Settings()
        self.locator = locator or TemplateLocator.default(self.settings)
        self.materializer = materializer or TreeMaterializer()
        self.applicator = applicator or FeatureApplicator()
        self.setup_runner = setup_runner or PocketBaseSetupRunner(self.settings)
        self.result = PipelineResult()
        self.controller: CleanupController | None = None

    @property
    def target(self) -> Path:
        return self.config.target_directory

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def run(self) -> int:
        """Execute every stage and return the process exit code."""
        started = time.monotonic()
        # must be captured before anything touches the disk
        controller = CleanupController(DirectoryLifecycleState.capture(self.target))
        self.controller = controller

        with controller.signal_scope():
            try:
                await self._execute(controller)
            except asyncio.CancelledError:
                current = asyncio.current_task()
                if current is not None:
                    current.uncancel()
                console.print("\n[yellow]Operation canceled. Cleaning up...[/yellow]")
                controller.interrupt()
            except PocketNextError as exc:
                controller.fail()
                print_remediation(str(exc), exc.remediation)
            except Exception as exc:
                controller.fail()
                print_remediation(f"Unexpected error: {exc}", [])
                if self.config.debug:
                    console.print_exception()
            else:
                controller.succeed()

        self.result.duration = time.monotonic() - started
        return controller.exit_code

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _execute(self, controller: CleanupController) -> None:
        with create_progress() as progress:
            task_id = progress.add_task("Fetching project template...", total=None)

            try:
                location = await self.locator.locate(self.config.template)
            finally:
                controller.track_temp_dirs(self.locator.temp_roots)
            self.result.provenance = location.provenance

            progress.update(task_id, description=f"Copying template files to {self.target}...")
            self.materializer.materialize(location.path, self.target)

            progress.update(task_id, description="Applying selected features...")
            self.result.features = self.applicator.apply(
                self.target,
                self.config,
                template_dir=location.path,
                temp_roots=controller.temp_dirs,
            )

            progress.update(task_id, description="Updating package.json...")
            update_manifest_name(self.target, self.config.project_name)

            if self.config.scripts_handling is not ScriptsHandling.KEEP:
                progress.update(task_id, description="Setting up PocketBase...")
                self.result.pocketbase_version = await self.setup_runner.run(
                    self.target, self.config.package_manager, self.config.pocketbase_version
                )
                self.result.scripts_run = True
                if self.config.scripts_handling is ScriptsHandling.RUN_AND_DELETE:
                    progress.update(task_id, description="Removing PocketBase setup scripts...")
                    prune_setup_scripts(self.target)

            if self.config.skip_install:
                return
            progress.update(task_id, description="Installing dependencies...")
            self.result.installed = await self._install()

    async def _install(self) -> bool:
        """Install dependencies; failure is fatal only when configured so."""
        manager = self.config.package_manager
        cmd = manager.install_command()
        returncode, _stdout, stderr = await run_command(
            cmd, cwd=self.target, timeout=self.settings.command_timeout
        )
        if returncode == 0:
            return True

        error = InstallError(
            f"Failed to install dependencies (exit code {returncode})",
            command=" ".join(cmd),
            returncode=returncode,
            stderr=stderr,
        )
        if self.settings.install_failure_fatal:
            raise error
        print_warning(f"Warning: {error}. The project was created without dependencies.")
        for number, step in enumerate(error.remediation, start=1):
            console.print(f"  {number}. {step}")
        return False


# ---------------------------------------------------------------------------
# Completion output
# ---------------------------------------------------------------------------


def next_steps(config: ProjectConfiguration, result: PipelineResult) -> list[str]:
    manager = config.package_manager
    steps = [f"cd {config.target_directory}"]
    if not result.installed:
        steps.append(" ".join(manager.install_command()))
    if config.scripts_handling is ScriptsHandling.KEEP:
        steps.append(" ".join(manager.script_command("setup")))
    steps.append(" ".join(manager.script_command("dev")))
    return steps


def print_completion(config: ProjectConfiguration, result: PipelineResult) -> None:
    lines = [
        f"[bold green]Created {config.project_name}[/bold green] "
        f"in {format_duration(result.duration)}",
        "",
        "Next steps:",
    ]
    lines.extend(f"  [cyan]{step}[/cyan]" for step in next_steps(config, result))
    console.print(Panel("\n".join(lines), title="[bold]Project ready[/bold]", border_style="green"))


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


async def run_cli(argv: list[str] | None, settings: Settings) -> int:
    partial = parse_cli_options(argv)
    print_banner(__version__)

    try:
        config = await resolve_configuration(partial, settings=settings)
    except PromptCancelled:
        console.print("[yellow]\nOperation canceled by user. Exiting...[/yellow]")
        return 0
    except PocketNextError as exc:
        print_remediation(str(exc), exc.remediation)
        return 1

    print_summary_table(config.as_summary(), title="Project configuration")
    pipeline = CreateProjectPipeline(config, settings)
    exit_code = await pipeline.run()

    if pipeline.controller is not None and pipeline.controller.state is RunState.SUCCEEDED:
        print_success("Project setup complete!")
        print_completion(config, pipeline.result)
    return exit_code


def main(argv: list[str] | None = None) -> int:
    """Parse *argv*, create the project and return the exit code."""
    settings = Settings.from_env()
    try:
        return asyncio.run(run_cli(argv, settings))
    except KeyboardInterrupt:
        # Ctrl+C before the pipeline installed its handlers; nothing was touched yet.
        console.print("[yellow]\nOperation canceled by user. Exiting...[/yellow]")
        return 0


def cli() -> None:
    """Console-script entry point."""
    sys.exit(main(sys.argv[1:]))


if __name__ == "__main__":
    cli()
