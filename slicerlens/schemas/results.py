"""
Typed failure results for the parsing layer.

The extractor, locator and preset resolver return these instead of raising,
so the caller can tell "not found" from "malformed" from a network problem
and pick a different user-facing message for each.
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class ExtractionErrorKind(str, Enum):
    NOT_A_ZIP = "NOT_A_ZIP"
    EMPTY_ARCHIVE = "EMPTY_ARCHIVE"


class ExtractionFailure(BaseModel):
    kind: ExtractionErrorKind
    message: str


class LocatorErrorKind(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    MALFORMED_SETTINGS_JSON = "MALFORMED_SETTINGS_JSON"
    # G-code config block variants of "not found"
    NO_START_MARKER = "NO_START_MARKER"
    NO_END_MARKER = "NO_END_MARKER"
    EMPTY_BLOCK = "EMPTY_BLOCK"


_NOT_FOUND_KINDS = {
    LocatorErrorKind.NOT_FOUND,
    LocatorErrorKind.NO_START_MARKER,
    LocatorErrorKind.NO_END_MARKER,
    LocatorErrorKind.EMPTY_BLOCK,
}


class LocatorFailure(BaseModel):
    kind: LocatorErrorKind
    message: str
    raw_text: Optional[str] = None

    @property
    def is_not_found(self) -> bool:
        return self.kind in _NOT_FOUND_KINDS


class ResolutionErrorKind(str, Enum):
    CATALOG_UNAVAILABLE = "CATALOG_UNAVAILABLE"
    PRESET_NOT_FOUND = "PRESET_NOT_FOUND"
    PRESET_DETAIL_UNAVAILABLE = "PRESET_DETAIL_UNAVAILABLE"


class ResolutionFailure(BaseModel):
    kind: ResolutionErrorKind
    preset_name: Optional[str] = None
    message: str
