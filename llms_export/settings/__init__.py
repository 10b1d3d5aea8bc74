"""Application and export settings loading."""

from .app import AppSettings, derive_tenant_id, get_settings
from .export import ExportSettings, load_export_settings


__all__ = [
    "AppSettings",
    "ExportSettings",
    "derive_tenant_id",
    "get_settings",
    "load_export_settings",
]
