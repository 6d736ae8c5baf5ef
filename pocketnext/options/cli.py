"""Command-line parsing.

Produces a :class:`PartialConfiguration`.  Enum-valued flags are read as plain
strings and coerced afterwards, so an unknown value becomes the documented
default with a warning instead of an argparse error.
"""

from __future__ import annotations

import argparse
import sys

from pocketnext import __version__
from pocketnext.config import (
    FIELD_CHOICES,
    FIELD_DEFAULTS,
    FIELD_LABELS,
    PackageManager,
    PartialConfiguration,
    Profile,
    coerce_choice,
    is_valid_version,
)
from pocketnext.options.profiles import DEFAULT_PROFILE
from pocketnext.template.registry import resolve_template_id
from pocketnext.utils import print_warning

DEFAULT_PROJECT_PATH = "my-app"

_EXAMPLES = (
    "Examples:\n"
    "  pocketnext my-app\n"
    "  pocketnext my-app --use-npm\n"
    "  pocketnext my-app --profile production -y\n"
    "  pocketnext my-app --deployment vercel --image-loader vercel\n"
    "  pocketnext my-app --docker coolify --github-workflows -y\n"
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pocketnext",
        description="Create a new Next.js + PocketBase project.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=_EXAMPLES,
    )
    parser.add_argument(
        "directory",
        nargs="?",
        default=None,
        help=f"Project directory (default: {DEFAULT_PROJECT_PATH})",
    )
    parser.add_argument("-t", "--template", default=None, help="Template: default, monorepo")
    parser.add_argument(
        "--profile",
        default=None,
        help="Profile: minimal, standard, production, custom",
    )
    parser.add_argument(
        "--deployment",
        dest="deployment_platform",
        default=None,
        help="Deployment platform: vercel, coolify, standard (default: standard)",
    )
    parser.add_argument(
        "--docker",
        dest="docker_config",
        default=None,
        help="Docker configuration: standard, coolify, none (default: standard)",
    )
    parser.add_argument(
        "--image-loader",
        dest="image_loader",
        default=None,
        help="Image loader: vercel, coolify, wsrv (default: vercel)",
    )
    parser.add_argument(
        "--scripts",
        dest="scripts_handling",
        default=None,
        help="PocketBase scripts: keep, runAndKeep, runAndDelete (default: keep)",
    )
    parser.add_argument(
        "--pb-version",
        dest="pocketbase_version",
        default=None,
        help="PocketBase version x.y.z (default: stable release)",
    )
    parser.add_argument(
        "--github-workflows",
        dest="include_github_workflows",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Include GitHub workflow files",
    )

    managers = parser.add_mutually_exclusive_group()
    for manager in PackageManager:
        managers.add_argument(
            f"--use-{manager.value}",
            dest="package_manager",
            action="store_const",
            const=manager,
            help=f"Use {manager.value} as package manager",
        )

    parser.add_argument("--skip-install", action="store_true", help="Skip package installation")
    parser.add_argument(
        "-y", "--yes", action="store_true", help="Skip interactive prompts and use defaults"
    )
    parser.add_argument(
        "--quick", action="store_true", help="Use the standard profile and ask fewer questions"
    )
    parser.add_argument("--debug", action="store_true", help="Show tracebacks on failure")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def parse_cli_options(argv: list[str] | None = None) -> PartialConfiguration:
    """Parse *argv* into a partial configuration.  Bad values never raise."""
    args = build_parser().parse_args(
        [arg for arg in (sys.argv[1:] if argv is None else argv) if arg != "@latest"]
    )

    values: dict = {
        "target_directory": args.directory,
        "package_manager": args.package_manager,
        "include_github_workflows": args.include_github_workflows,
        "skip_install": args.skip_install,
        "yes": args.yes,
        "quick": args.quick,
        "debug": args.debug,
    }

    if args.template is not None:
        values["template"] = resolve_template_id(args.template)

    if args.profile is not None:
        values["profile"] = coerce_choice(args.profile, Profile, DEFAULT_PROFILE, "project profile")
    elif args.quick:
        values["profile"] = DEFAULT_PROFILE

    for field, enum_type in FIELD_CHOICES.items():
        raw = getattr(args, field)
        if raw is not None:
            values[field] = coerce_choice(
                raw, enum_type, FIELD_DEFAULTS[field], FIELD_LABELS[field]
            )

    if args.pocketbase_version is not None:
        if is_valid_version(args.pocketbase_version):
            values["pocketbase_version"] = args.pocketbase_version
        else:
            print_warning(
                f'Warning: Invalid PocketBase version format "{args.pocketbase_version}". '
                "Must be in format x.y.z. Using default version instead."
            )

    return PartialConfiguration(**values)
