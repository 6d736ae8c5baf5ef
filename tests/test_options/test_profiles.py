"""Unit tests for project profiles (pocketnext.options.profiles)."""

from __future__ import annotations

import pytest

from pocketnext.config import (
    FIELD_DEFAULTS,
    DeploymentPlatform,
    DockerConfig,
    ImageLoader,
    PartialConfiguration,
    Profile,
    ScriptsHandling,
)
from pocketnext.options.profiles import PROFILES, apply_profile, profile_choices

pytestmark = pytest.mark.unit


class TestProfileTable:
    def test_every_profile_listed(self):
        assert [value for value, _t, _d in profile_choices()] == [
            "minimal",
            "standard",
            "production",
            "custom",
        ]

    @pytest.mark.parametrize("profile", [Profile.MINIMAL, Profile.STANDARD, Profile.PRODUCTION])
    def test_non_custom_profiles_cover_every_field(self, profile):
        assert set(PROFILES[profile].features) == set(FIELD_DEFAULTS)

    def test_custom_has_no_features(self):
        assert PROFILES[Profile.CUSTOM].features == {}


class TestApplyProfile:
    def test_production_fills_unset_fields(self):
        result = apply_profile(PartialConfiguration(), Profile.PRODUCTION)

        assert result.profile is Profile.PRODUCTION
        assert result.deployment_platform is DeploymentPlatform.COOLIFY
        assert result.docker_config is DockerConfig.COOLIFY
        assert result.image_loader is ImageLoader.COOLIFY
        assert result.include_github_workflows is True
        assert result.scripts_handling is ScriptsHandling.RUN_AND_DELETE

    @pytest.mark.parametrize("profile", list(Profile))
    def test_explicit_values_always_win(self, profile):
        partial = PartialConfiguration(
            deployment_platform=DeploymentPlatform.VERCEL,
            docker_config=DockerConfig.NONE,
            image_loader=ImageLoader.WSRV,
            include_github_workflows=False,
            scripts_handling=ScriptsHandling.KEEP,
        )

        result = apply_profile(partial, profile)

        for field in FIELD_DEFAULTS:
            assert getattr(result, field) == getattr(partial, field)

    def test_custom_fills_nothing(self):
        result = apply_profile(PartialConfiguration(), Profile.CUSTOM)
        assert result.unset_fields() == list(FIELD_DEFAULTS)

    def test_input_is_not_mutated(self):
        partial = PartialConfiguration()
        apply_profile(partial, Profile.MINIMAL)
        assert partial.profile is None
        assert partial.docker_config is None
