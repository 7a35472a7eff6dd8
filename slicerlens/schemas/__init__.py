from .settings import (
    JSONValue,
    ResolvedPreset,
    ProjectSettings,
    GcodeConfigBlock,
    PresetCatalogEntry,
    ComparisonItem,
    ComparisonSource,
)
from .results import (
    ExtractionErrorKind,
    ExtractionFailure,
    LocatorErrorKind,
    LocatorFailure,
    ResolutionErrorKind,
    ResolutionFailure,
)

__all__ = [
    "JSONValue",
    "ResolvedPreset",
    "ProjectSettings",
    "GcodeConfigBlock",
    "PresetCatalogEntry",
    "ComparisonItem",
    "ComparisonSource",
    "ExtractionErrorKind",
    "ExtractionFailure",
    "LocatorErrorKind",
    "LocatorFailure",
    "ResolutionErrorKind",
    "ResolutionFailure",
]
