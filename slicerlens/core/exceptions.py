from typing import Any
from fastapi import HTTPException, status


class SlicerLensException(HTTPException):
    """Base exception for SlicerLens request errors."""
    def __init__(self, status_code: int, detail: Any):
        super().__init__(status_code=status_code, detail=detail)


class InvalidUploadError(SlicerLensException):
    """
    Raised when the uploaded payload cannot be processed at all
    (wrong extension, corrupt ZIP/gzip container, empty archive).
    """
    def __init__(self, message: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


class UploadTooLargeError(SlicerLensException):
    """Raised when an upload (or its decompressed content) exceeds the configured limit."""
    def __init__(self, what: str, limit_bytes: int):
        limit_mb = limit_bytes / (1024 * 1024)
        super().__init__(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"{what} exceeds {limit_mb:g}MB limit."
        )


class ProjectSettingsNotFoundError(SlicerLensException):
    """The 3MF archive carries no Metadata/project_settings.config."""
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="No project settings found in the 3MF file. "
                   "This file may not be an OrcaSlicer, Bambu Studio or compatible 3MF file."
        )


class MalformedProjectSettingsError(SlicerLensException):
    """
    The settings file exists but is not valid JSON.
    The detail carries an excerpt of the raw text so the client can show it.
    """
    RAW_EXCERPT_CHARS = 2000

    def __init__(self, message: str, raw_text: str | None):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "message": message,
                "raw_excerpt": (raw_text or "")[:self.RAW_EXCERPT_CHARS],
            }
        )


class GcodeConfigNotFoundError(SlicerLensException):
    """
    The G-code carries no usable CONFIG_BLOCK. Raised with a slicer-specific
    hint, since only OrcaSlicer-family slicers embed this block.
    """
    def __init__(self, message: str):
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=message)


class AnalyzerUnavailableError(SlicerLensException):
    """No LLM client is configured (OPENAI_API_KEY missing)."""
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="OPENAI_API_KEY is not set. This is required for analysis."
        )


class FetchExhaustedError(Exception):
    """
    Raised by RetryPolicy when every attempt of an outbound fetch failed.
    NOT an HTTP exception - the preset resolver converts it into a typed failure.
    """
    def __init__(self, url: str, attempts: int, last_error: BaseException | None):
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Fetching {url} failed after {attempts} attempt(s): {last_error!r}")
