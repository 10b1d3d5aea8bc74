"""Manifest assembly, rendering and atomic output."""

from llms_export.manifest.builder import ManifestBuilder, render_manifest
from llms_export.manifest.io import AtomicWriter
from llms_export.manifest.models import (
    GeneratedFile,
    GenerationStatus,
    Manifest,
    ManifestLink,
    ManifestSection,
)


__all__ = [
    "AtomicWriter",
    "GeneratedFile",
    "GenerationStatus",
    "Manifest",
    "ManifestBuilder",
    "ManifestLink",
    "ManifestSection",
    "render_manifest",
]
