"""npm package-name validation for the new project's directory name."""

from __future__ import annotations

import re

from pocketnext.errors import InvalidProjectNameError

MAX_NAME_LENGTH = 214
RESERVED_NAMES = frozenset({"node_modules", "favicon.ico"})
# Characters that survive URI component encoding unchanged.
_URL_SAFE_RE = re.compile(r"^[A-Za-z0-9\-_.!~*'()]+$")
_SCOPED_RE = re.compile(r"^@([^/]+)/(.+)$")


def project_name_problems(name: str) -> list[str]:
    """Return every reason *name* is not valid for a new npm package."""
    problems: list[str] = []
    if not name:
        return ["name length must be greater than zero"]
    if name != name.strip():
        problems.append("name cannot contain leading or trailing spaces")
    if name.startswith("."):
        problems.append("name cannot start with a period")
    if name.startswith("_"):
        problems.append("name cannot start with an underscore")
    if name.lower() in RESERVED_NAMES:
        problems.append(f"{name} is not a valid package name")
    if len(name) > MAX_NAME_LENGTH:
        problems.append(f"name can no longer contain more than {MAX_NAME_LENGTH} characters")
    if name.lower() != name:
        problems.append("name can no longer contain capital letters")

    scoped = _SCOPED_RE.match(name)
    parts = scoped.groups() if scoped else (name,)
    if not all(_URL_SAFE_RE.match(part) for part in parts):
        problems.append("name can only contain URL-friendly characters")
    return problems


def validate_project_name(name: str) -> str:
    """Return *name* unchanged or raise :class:`InvalidProjectNameError`."""
    problems = project_name_problems(name)
    if problems:
        raise InvalidProjectNameError(f"Invalid project name {name!r}: {problems[0]}")
    return name
