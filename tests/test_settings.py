"""Tests for DeploySettings."""

import pytest

from apic_rulesets.azure_api import ANALYZER_API_VERSION
from apic_rulesets.models import TierPolicy
from apic_rulesets.settings import DEFAULT_ANALYZER_CONFIG, DeploySettings


class TestDeploySettings:
    def test_defaults(self) -> None:
        s = DeploySettings(_env_file=None)
        assert s.workspace == "default"
        assert s.import_max_attempts == 3
        assert s.import_retry_delay == 10.0
        assert s.tier_policy == TierPolicy.prune
        assert s.protected_configs == [DEFAULT_ANALYZER_CONFIG]
        assert s.missing_scope_fields() == ["subscription_id", "resource_group", "service_name"]

    def test_reads_prefixed_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("APIC_SUBSCRIPTION_ID", "sub-env")
        monkeypatch.setenv("APIC_TIER_POLICY", "first-only")
        monkeypatch.setenv("APIC_PROTECTED_CONFIGS", '["keep-me"]')
        s = DeploySettings(_env_file=None)
        assert s.subscription_id == "sub-env"
        assert s.tier_policy == TierPolicy.first_only
        assert s.protected_configs == [DEFAULT_ANALYZER_CONFIG, "keep-me"]

    def test_rejects_zero_attempts(self) -> None:
        with pytest.raises(Exception, match="IMPORT_MAX_ATTEMPTS"):
            DeploySettings(import_max_attempts=0, _env_file=None)

    def test_scope(self, settings) -> None:
        scope = settings.scope()
        assert scope.service_name == "apic-1"
        assert scope.analyzer_api_version == ANALYZER_API_VERSION
        assert scope.tenant_id is None
