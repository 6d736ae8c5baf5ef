"""PocketBase version discovery and setup."""

from pocketnext.pocketbase.setup import PocketBaseSetupRunner, update_env_file
from pocketnext.pocketbase.versions import PocketBaseVersions, VersionCache, VersionRegistry

__all__ = [
    "PocketBaseSetupRunner",
    "PocketBaseVersions",
    "VersionCache",
    "VersionRegistry",
    "update_env_file",
]
