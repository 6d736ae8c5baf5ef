"""Exception hierarchy for the create-project pipeline.

Every fatal condition raised below the pipeline driver is a
:class:`PocketNextError`.  Each carries a short cause (the message) and an
ordered list of remediation steps that the driver prints as a numbered list.
"""

from __future__ import annotations


class PocketNextError(Exception):
    """Base class for fatal, user-reportable failures."""

    default_remediation: tuple[str, ...] = ()

    def __init__(self, message: str, remediation: list[str] | None = None) -> None:
        self.remediation = list(remediation) if remediation else list(self.default_remediation)
        super().__init__(message)


class InvalidProjectNameError(PocketNextError):
    """Raised when the target directory's basename is not a valid package name."""

    default_remediation = (
        "Use lowercase letters, digits, '-', '_' and '.' only",
        "Do not start the name with '.' or '_'",
    )


class TemplateResolutionError(PocketNextError):
    """Raised when no strategy could produce a template tree."""

    default_remediation = (
        "Check your internet connection",
        "Run from a checkout that contains the templates/ folder",
        "Clone the repository manually: git clone https://github.com/kacperkwapisz/pocketnext.git",
    )


class MaterializationError(PocketNextError):
    """Raised when the template could not be copied into the target directory."""

    default_remediation = (
        "Check that the target directory is writable",
        "Make sure there is enough free disk space",
        "Retry with a fresh, empty target directory",
    )


class ManifestError(PocketNextError):
    """Raised when package.json cannot be read or written."""

    default_remediation = (
        "Check that package.json in the template is valid JSON",
        "Check that the target directory is writable",
    )


class CommandError(PocketNextError):
    """Raised when an external command exits non-zero."""

    def __init__(
        self,
        message: str,
        command: str = "",
        returncode: int | None = None,
        stderr: str = "",
        remediation: list[str] | None = None,
    ) -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message, remediation)


class SetupError(CommandError):
    """Raised when the project's PocketBase setup script fails."""

    default_remediation = (
        "Check your internet connection (the setup script downloads PocketBase)",
        "Run the setup script manually inside the project: <pm> run setup:db",
        "Pin a known version with --pb-version x.y.z",
    )


class InstallError(CommandError):
    """Raised when dependency installation fails."""

    default_remediation = (
        "Run the install command manually inside the project",
        "Retry with --skip-install and install later",
    )
