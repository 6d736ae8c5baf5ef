"""PocketBase release discovery.

Queries the GitHub releases API for the latest release and for "stable",
the second-newest non-prerelease.  Results are kept in an injectable
:class:`VersionCache` so an interactive session asks GitHub at most once per
TTL window.  The public accessors never raise: offline, timeouts, HTTP errors
and unexpected payloads all produce the fixed fallback version.

Typical usage::

    registry = VersionRegistry(settings)
    versions = await registry.get_versions()
    print(versions.latest, versions.stable)
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
from pydantic import BaseModel, Field

from pocketnext.config import Settings, is_valid_version
from pocketnext.utils import check_online, print_warning


class PocketBaseVersions(BaseModel):
    """Latest and stable PocketBase versions."""

    latest: str
    stable: str
    from_fallback: bool = Field(default=False, description="True when GitHub could not be used")


class VersionCache:
    """Single-slot cache with a TTL measured on an injectable clock."""

    def __init__(self, ttl: float = 300.0, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self.clock = clock
        self._value: PocketBaseVersions | None = None
        self._stored_at: float = 0.0

    def get(self) -> PocketBaseVersions | None:
        if self._value is None:
            return None
        if self.clock() - self._stored_at >= self.ttl:
            self._value = None
            return None
        return self._value

    def put(self, value: PocketBaseVersions) -> None:
        self._value = value
        self._stored_at = self.clock()


def _strip_tag(tag: Any) -> str:
    if not isinstance(tag, str):
        raise ValueError(f"unexpected tag_name {tag!r}")
    return tag[1:] if tag.startswith("v") else tag


def parse_latest(payload: Any) -> str:
    """Extract the version from a ``releases/latest`` payload."""
    if not isinstance(payload, dict):
        raise ValueError("latest release payload is not an object")
    version = _strip_tag(payload.get("tag_name"))
    if not is_valid_version(version):
        raise ValueError(f"latest release tag {version!r} is not x.y.z")
    return version


def parse_releases(payload: Any) -> list[str]:
    """Return non-prerelease versions from a ``releases`` listing, newest first."""
    if not isinstance(payload, list):
        raise ValueError("release listing is not an array")
    versions: list[str] = []
    for release in payload:
        if not isinstance(release, dict) or release.get("prerelease"):
            continue
        tag = release.get("tag_name")
        if not isinstance(tag, str):
            continue
        version = _strip_tag(tag)
        if is_valid_version(version):
            versions.append(version)
    return versions


def pick_stable(releases: list[str], latest: str) -> str:
    """Second-newest stable release, or *latest* when there is only one."""
    if len(releases) <= 1:
        return latest
    return releases[1]


class VersionRegistry:
    """Async GitHub release lookup with caching and a fixed fallback."""

    def __init__(
        self,
        settings: Settings | None = None,
        cache: VersionCache | None = None,
        online_check: Callable[[], Awaitable[bool]] | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.cache = cache or VersionCache(ttl=self.settings.version_cache_ttl)
        self._online_check = online_check

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.settings.network_timeout),
            headers={"User-Agent": self.settings.user_agent, "Accept": "application/vnd.github+json"},
            follow_redirects=True,
        )

    def _fallback(self) -> PocketBaseVersions:
        version = self.settings.fallback_pocketbase_version
        return PocketBaseVersions(latest=version, stable=version, from_fallback=True)

    async def is_online(self) -> bool:
        if self._online_check is not None:
            return await self._online_check()
        return await check_online(self.settings.connectivity_url, self.settings.network_timeout)

    async def _fetch(self) -> PocketBaseVersions:
        base = self.settings.releases_api.rstrip("/")
        async with self._client() as client:
            response = await client.get(f"{base}/latest")
            response.raise_for_status()
            latest = parse_latest(response.json())

            response = await client.get(base, params={"per_page": 5})
            response.raise_for_status()
            releases = parse_releases(response.json())
        return PocketBaseVersions(latest=latest, stable=pick_stable(releases, latest))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_versions(self) -> PocketBaseVersions:
        """Return latest/stable, from cache when fresh.  Never raises."""
        cached = self.cache.get()
        if cached is not None:
            return cached

        try:
            if not await self.is_online():
                return self._fallback()
            versions = await self._fetch()
        except (httpx.HTTPError, ValueError) as exc:
            print_warning(f"Failed to fetch PocketBase versions ({exc}). Using default.")
            return self._fallback()

        self.cache.put(versions)
        return versions

    async def latest(self) -> str:
        return (await self.get_versions()).latest

    async def stable(self) -> str:
        return (await self.get_versions()).stable
