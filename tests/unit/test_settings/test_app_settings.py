"""Unit tests for application settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from llms_export.settings.app import AppSettings, derive_tenant_id


class TestAppSettings:
    """Tests for environment-driven settings."""

    def test_reads_prefixed_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test values come from LLMS_EXPORT_ variables."""
        monkeypatch.setenv("LLMS_EXPORT_SITE_TITLE", "Docs")
        monkeypatch.setenv("LLMS_EXPORT_STATE_PATH", "/tmp/state.sqlite")
        monkeypatch.setenv("LLMS_EXPORT_MAX_ITEM_FAILURES", "3")

        settings = AppSettings()

        assert settings.site_title == "Docs"
        assert settings.state_path == Path("/tmp/state.sqlite")
        assert settings.max_item_failures == 3

    def test_upload_timeout_capped(self) -> None:
        """Test the upload timeout may not exceed 30 seconds."""
        with pytest.raises(ValidationError):
            AppSettings(upload_timeout_seconds=45)

    def test_item_attempts_at_least_one(self) -> None:
        """Test an item must be allowed at least one attempt."""
        assert AppSettings().max_item_attempts == 3
        with pytest.raises(ValidationError):
            AppSettings(max_item_attempts=0)

    def test_progress_ttl_lower_bound(self) -> None:
        """Test the progress TTL has a floor of one minute."""
        with pytest.raises(ValidationError):
            AppSettings(progress_ttl_seconds=10)

    def test_explicit_tenant_id_wins(self) -> None:
        """Test a configured tenant id is used as is."""
        settings = AppSettings(site_url="https://example.com", tenant_id="custom")
        assert settings.resolved_tenant_id() == "custom"

    def test_tenant_id_derived_from_url(self) -> None:
        """Test the tenant id falls back to the site URL slug."""
        settings = AppSettings(site_url="https://Example.com/blog/")
        assert settings.resolved_tenant_id() == "example-com-blog"


class TestDeriveTenantId:
    """Tests for derive_tenant_id."""

    def test_host_only(self) -> None:
        """Test a bare host becomes a slug."""
        assert derive_tenant_id("https://docs.example.org") == "docs-example-org"

    def test_stable(self) -> None:
        """Test derivation is deterministic."""
        url = "https://example.com/a/b"
        assert derive_tenant_id(url) == derive_tenant_id(url)
