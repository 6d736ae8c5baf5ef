"""Turn CLI values, profile defaults and prompt answers into one configuration.

Precedence, highest first: explicit flags, prompt answers, profile defaults,
hardcoded defaults.  Profiles and prompts only ever fill fields that are still
unset, and every value is coerced into its closed choice set before it lands
in the final :class:`ProjectConfiguration`.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from pocketnext.config import (
    FIELD_CHOICES,
    FIELD_DEFAULTS,
    FIELD_LABELS,
    PackageManager,
    PartialConfiguration,
    ProjectConfiguration,
    ScriptsHandling,
    Settings,
    coerce_choice,
    is_valid_version,
)
from pocketnext.options.cli import DEFAULT_PROJECT_PATH
from pocketnext.options.names import validate_project_name
from pocketnext.options.profiles import apply_profile
from pocketnext.options.prompts import Prompter, PromptCancelled
from pocketnext.pocketbase.versions import VersionRegistry
from pocketnext.template.registry import DEFAULT_TEMPLATE, resolve_template_id
from pocketnext.utils import is_non_empty_dir, print_warning

# Probe order when neither a flag nor the invoking tool names a manager.
PACKAGE_MANAGER_PREFERENCE = (
    PackageManager.BUN,
    PackageManager.PNPM,
    PackageManager.YARN,
    PackageManager.NPM,
)


def detect_package_manager(user_agent: str | None = None, which=shutil.which) -> PackageManager:
    """Infer the package manager from ``npm_config_user_agent`` or ``PATH``."""
    agent = user_agent if user_agent is not None else os.environ.get("npm_config_user_agent", "")
    for manager in PACKAGE_MANAGER_PREFERENCE:
        if agent.startswith(manager.value):
            return manager
    for manager in PACKAGE_MANAGER_PREFERENCE:
        if which(manager.value):
            return manager
    return PackageManager.NPM


def resolve_package_manager(explicit: PackageManager | None, **detect_kwargs) -> PackageManager:
    """An explicit ``--use-*`` flag wins; otherwise detect once."""
    if explicit is not None:
        return explicit
    return detect_package_manager(**detect_kwargs)


def fill_defaults(partial: PartialConfiguration) -> PartialConfiguration:
    """Give every still-unset feature field its hardcoded default."""
    updates = {field: FIELD_DEFAULTS[field] for field in partial.unset_fields()}
    return partial.model_copy(update=updates)


def normalize_choices(partial: PartialConfiguration) -> PartialConfiguration:
    """Coerce every enum-valued field into its closed set."""
    updates = {}
    for field, enum_type in FIELD_CHOICES.items():
        value = getattr(partial, field)
        if value is not None and not isinstance(value, enum_type):
            updates[field] = coerce_choice(
                value, enum_type, FIELD_DEFAULTS[field], FIELD_LABELS[field]
            )
    if partial.template is not None:
        updates["template"] = resolve_template_id(partial.template)
    if partial.pocketbase_version is not None and not is_valid_version(partial.pocketbase_version):
        print_warning(
            f'Warning: Invalid PocketBase version format "{partial.pocketbase_version}". '
            "Using default version instead."
        )
        updates["pocketbase_version"] = None
    return partial.model_copy(update=updates) if updates else partial


async def resolve_configuration(
    partial: PartialConfiguration,
    prompter: Prompter | None = None,
    registry: VersionRegistry | None = None,
    settings: Settings | None = None,
    package_manager: PackageManager | None = None,
) -> ProjectConfiguration:
    """Resolve *partial* into a complete configuration.

    With ``partial.yes`` set nothing is asked.  Otherwise unset fields are
    prompted for, except where a profile (or ``--quick``) already filled them.

    Raises:
        PromptCancelled: The user aborted a question or declined to reuse a
            non-empty directory.
        InvalidProjectNameError: The directory name is not a valid package name.
    """
    interactive = not partial.yes
    prompter = prompter or Prompter()
    settings = settings or Settings()

    target = partial.target_directory
    if not target:
        target = prompter.ask_project_path(DEFAULT_PROJECT_PATH) if interactive else DEFAULT_PROJECT_PATH
    target_path = Path(target).resolve()
    validate_project_name(target_path.name)

    if is_non_empty_dir(target_path):
        if interactive:
            if not prompter.confirm_existing_directory(target_path):
                raise PromptCancelled()
        else:
            print_warning(
                f"Warning: Dir {target_path} exists and has content. "
                "Continuing as requested with --yes flag."
            )

    resolved = normalize_choices(partial.model_copy(update={"target_directory": str(target_path)}))

    if resolved.template is None:
        template = prompter.ask_template() if interactive else DEFAULT_TEMPLATE
        resolved = resolved.model_copy(update={"template": template})

    profile = resolved.profile
    if profile is None and interactive and not resolved.quick:
        profile = prompter.ask_profile()
    if profile is not None:
        resolved = apply_profile(resolved, profile)

    if interactive:
        for field in resolved.unset_fields():
            answer = prompter.ask_field(field, FIELD_DEFAULTS[field])
            if field in FIELD_CHOICES:
                answer = coerce_choice(
                    answer, FIELD_CHOICES[field], FIELD_DEFAULTS[field], FIELD_LABELS[field]
                )
            resolved = resolved.model_copy(update={field: answer})

    resolved = fill_defaults(resolved)

    if (
        resolved.pocketbase_version is None
        and resolved.scripts_handling is not ScriptsHandling.KEEP
        and interactive
    ):
        version = await prompter.ask_pocketbase_version(registry or VersionRegistry(settings))
        resolved = resolved.model_copy(update={"pocketbase_version": version})

    manager = resolve_package_manager(resolved.package_manager or package_manager)

    return ProjectConfiguration(
        target_directory=target_path,
        template=resolved.template or DEFAULT_TEMPLATE,
        profile=resolved.profile,
        deployment_platform=resolved.deployment_platform,
        docker_config=resolved.docker_config,
        image_loader=resolved.image_loader,
        include_github_workflows=bool(resolved.include_github_workflows),
        scripts_handling=resolved.scripts_handling,
        pocketbase_version=resolved.pocketbase_version,
        package_manager=manager,
        skip_install=resolved.skip_install,
        yes=resolved.yes,
        debug=resolved.debug,
    )
