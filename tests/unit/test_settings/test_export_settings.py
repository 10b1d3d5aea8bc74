"""Unit tests for export settings."""

import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

from llms_export.content.models import DEFAULT_MAX_WORDS
from llms_export.settings.export import (
    ExportSettings,
    load_export_settings,
    sanitize_key,
)


@pytest.fixture
def temp_dir() -> Generator[Path]:
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


class TestExportSettingsDefaults:
    """Tests for default values."""

    def test_defaults(self) -> None:
        """Test the documented defaults."""
        settings = ExportSettings()

        assert settings.post_types == ["post", "page"]
        assert settings.auto_update is True
        assert settings.include_excerpts is True
        assert settings.include_meta is False
        assert settings.include_taxonomies is False
        assert settings.max_posts_per_type == 50


class TestExportSettingsValidation:
    """Tests for sanitizing and clamping."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [(0, 1), (-5, 5), (1, 1), (1000, 1000), (5000, 1000), ("25", 25), ("bad", 50)],
    )
    def test_max_posts_clamped(self, raw: object, expected: int) -> None:
        """Test the per-type limit is clamped into 1..1000."""
        assert ExportSettings(max_posts_per_type=raw).max_posts_per_type == expected

    def test_post_types_sanitized(self) -> None:
        """Test type keys are lowercased, cleaned and deduplicated."""
        settings = ExportSettings(post_types=["Post", "page!", "post", "", "case_study"])

        assert settings.post_types == ["post", "page", "case_study"]

    def test_single_post_type_string(self) -> None:
        """Test a bare string is accepted as one type."""
        assert ExportSettings(post_types="page").post_types == ["page"]

    def test_empty_post_types_allowed(self) -> None:
        """Test no types is a valid configuration (rejected at run start)."""
        assert ExportSettings(post_types=[]).post_types == []

    def test_frozen(self) -> None:
        """Test settings are immutable."""
        settings = ExportSettings()
        with pytest.raises(ValueError):
            settings.auto_update = False  # type: ignore[misc]

    def test_sanitize_key(self) -> None:
        """Test key sanitization keeps only [a-z0-9_-]."""
        assert sanitize_key("My-Type_2 !") == "my-type_2"


class TestExtractionOptions:
    """Tests for deriving extraction options."""

    def test_flags_copied(self) -> None:
        """Test extraction flags follow the settings."""
        settings = ExportSettings(
            include_meta=True, include_taxonomies=True, include_excerpts=False
        )

        options = settings.extraction_options()

        assert options.include_meta is True
        assert options.include_taxonomies is True
        assert options.include_excerpts is False
        assert options.max_words == DEFAULT_MAX_WORDS

    def test_max_words_override(self) -> None:
        """Test the word cap can be overridden."""
        assert ExportSettings().extraction_options(max_words=120).max_words == 120


class TestLoadExportSettings:
    """Tests for loading settings from YAML."""

    def test_none_path_gives_defaults(self) -> None:
        """Test no path yields defaults."""
        assert load_export_settings(None) == ExportSettings()

    def test_missing_file_gives_defaults(self, temp_dir: Path) -> None:
        """Test a missing file yields defaults."""
        assert load_export_settings(temp_dir / "nope.yaml") == ExportSettings()

    def test_partial_file(self, temp_dir: Path) -> None:
        """Test missing keys fall back to defaults and values are clamped."""
        path = temp_dir / "export.yaml"
        path.write_text(
            "post_types: [product]\nmax_posts_per_type: 2000\nunknown: 1\n",
            encoding="utf-8",
        )

        settings = load_export_settings(path)

        assert settings.post_types == ["product"]
        assert settings.max_posts_per_type == 1000
        assert settings.include_excerpts is True
