"""Option resolution: CLI flags, profiles and interactive prompts."""

from pocketnext.options.cli import build_parser, parse_cli_options
from pocketnext.options.names import validate_project_name
from pocketnext.options.profiles import PROFILES, apply_profile
from pocketnext.options.prompts import Prompter, PromptCancelled
from pocketnext.options.resolver import resolve_configuration, resolve_package_manager

__all__ = [
    "PROFILES",
    "PromptCancelled",
    "Prompter",
    "apply_profile",
    "build_parser",
    "parse_cli_options",
    "resolve_configuration",
    "resolve_package_manager",
    "validate_project_name",
]
