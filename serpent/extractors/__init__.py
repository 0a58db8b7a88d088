"""Extractors — turn the user's page surface into a bundle."""

from .base import (
    Bundle,
    BundleKind,
    ContentBundle,
    EnvironmentId,
    Extractor,
    ExtractorRegistry,
    ProblemBundle,
)
from .environment import has_notebook_markers, identify_environment
from .registry import build_registry
from .surface import NotebookSession, OpenDocument, PageSurface

__all__ = [
    "Bundle",
    "BundleKind",
    "ContentBundle",
    "EnvironmentId",
    "Extractor",
    "ExtractorRegistry",
    "ProblemBundle",
    "has_notebook_markers",
    "identify_environment",
    "build_registry",
    "NotebookSession",
    "OpenDocument",
    "PageSurface",
]
