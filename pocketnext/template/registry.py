"""Template registry.

Maps template ids to the branches of the template repository they are
published on, plus the metadata shown in the interactive template prompt.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from pocketnext.utils import print_warning

DEFAULT_TEMPLATE = "default"


class TemplateInfo(BaseModel):
    """Registry entry for a single template."""

    branch: str = Field(..., description="Primary branch the template is fetched from")
    branches: list[str] = Field(
        default_factory=list, description="Every branch the template is available on"
    )
    description: str = ""
    experimental: bool = False


TEMPLATES: dict[str, TemplateInfo] = {
    "default": TemplateInfo(
        branch="main",
        branches=["main", "canary"],
        description="Standard Next.js + PocketBase structure",
    ),
    "monorepo": TemplateInfo(
        branch="canary",
        branches=["canary"],
        description="Turborepo monorepo structure with shared packages",
        experimental=True,
    ),
}


def resolve_template_id(template_id: str | None) -> str:
    """Return *template_id* if registered, else ``"default"`` with a warning."""
    if template_id in TEMPLATES:
        return template_id
    print_warning(
        f'Warning: Template "{template_id}" not found. Using "{DEFAULT_TEMPLATE}" template.'
    )
    return DEFAULT_TEMPLATE


def best_branch_for(template_id: str, preferred_branch: str | None = None) -> str:
    """Pick the branch to fetch *template_id* from.

    The preferred branch wins when the template is published there;
    otherwise the template's primary branch is used.
    """
    info = TEMPLATES.get(template_id)
    if info is None:
        return "main"
    if not info.branches:
        return info.branch
    if preferred_branch and preferred_branch in info.branches:
        return preferred_branch
    return info.branch


def template_choices() -> list[tuple[str, str, str]]:
    """Return ``(id, title, description)`` triples for the template prompt."""
    choices = []
    for template_id, info in TEMPLATES.items():
        title = template_id.capitalize() + (" (experimental)" if info.experimental else "")
        choices.append((template_id, title, info.description))
    return choices
