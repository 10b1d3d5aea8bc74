"""Application settings powered by Pydantic BaseSettings."""

import hashlib
import re
from pathlib import Path
from typing import Annotated
from urllib.parse import urlparse

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from llms_export.artifacts.constants import MAX_UPLOAD_TIMEOUT_SECONDS


DEFAULT_ARTIFACT_ENDPOINT = "https://cdn.example.invalid/upload"
_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


class AppSettings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LLMS_EXPORT_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    site_title: str = "My Site"
    site_description: str = ""
    site_url: str = "http://localhost"
    tenant_id: str | None = Field(
        default=None, description="Artifact namespace; derived from site_url if unset"
    )

    artifact_endpoint: str = DEFAULT_ARTIFACT_ENDPOINT
    artifact_token: str | None = None
    upload_timeout_seconds: Annotated[
        float, Field(gt=0.0, le=MAX_UPLOAD_TIMEOUT_SECONDS)
    ] = MAX_UPLOAD_TIMEOUT_SECONDS

    state_path: Path = Path("state/llms_export.sqlite")
    manifest_path: Path = Path("public/llms.txt")
    content_path: Path = Path("content/export.yaml")
    export_config_path: Path | None = None

    progress_ttl_seconds: Annotated[int, Field(ge=60)] = 3600
    max_item_failures: Annotated[int | None, Field(ge=1)] = None
    max_item_attempts: Annotated[int, Field(ge=1)] = 3

    def resolved_tenant_id(self) -> str:
        """Return the configured tenant id, deriving one from the site URL."""
        return self.tenant_id or derive_tenant_id(self.site_url)


def derive_tenant_id(site_url: str) -> str:
    """Derive a stable tenant identifier from a site URL.

    The identifier is the slugified host and path. Sites whose URL yields
    no usable characters fall back to a hash of the URL.

    Args:
        site_url: Public URL of the site.

    Returns:
        Tenant identifier string.

    Examples:
        >>> derive_tenant_id("https://example.com/blog")
        'example-com-blog'
    """
    parsed = urlparse(site_url)
    host = parsed.hostname or "localhost"
    raw = f"{host}{parsed.path or ''}".lower()
    slug = _NON_SLUG_CHARS.sub("-", raw).strip("-")
    if slug:
        return slug
    return "site_" + hashlib.sha256(site_url.encode("utf-8")).hexdigest()[:12]


def get_settings() -> AppSettings:
    """Get a settings instance."""
    return AppSettings()
