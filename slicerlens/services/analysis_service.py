import asyncio
import gzip
import io
import logging
import zlib
from typing import List, Optional, Tuple

from slicerlens.core.exceptions import (
    AnalyzerUnavailableError,
    GcodeConfigNotFoundError,
    InvalidUploadError,
    MalformedProjectSettingsError,
    ProjectSettingsNotFoundError,
    UploadTooLargeError,
)
from slicerlens.schemas.analysis import (
    AnalysisReport,
    AnalysisResult,
    ConfigFile,
    ExtractedFile,
    TroubleshootingReport,
)
from slicerlens.schemas.results import ExtractionFailure, LocatorErrorKind, LocatorFailure
from slicerlens.schemas.settings import GcodeConfigBlock, ProjectSettings
from slicerlens.services.logic.archive_extractor import (
    RawArchive,
    collect_config_files,
    extract_archive,
    summarize_archive,
)
from slicerlens.services.logic.config_locator import locate_gcode_config_block, locate_project_settings
from slicerlens.services.logic.diff_reconciler import reconcile
from slicerlens.services.logic.profile_describer import describe, describe_troubleshooting
from slicerlens.services.preset_resolver import PresetResolver
from slicerlens.services.profile_analyzer import ProfileAnalyzer

logger = logging.getLogger("AnalysisService")

GCODE_BLOCK_HINTS = {
    LocatorErrorKind.NO_START_MARKER: (
        "No slicer configuration block found. This does not look like a G-code file exported by "
        "OrcaSlicer (or another slicer that writes '; CONFIG_BLOCK_START'). Re-export the G-code "
        "from OrcaSlicer and try again."
    ),
    LocatorErrorKind.NO_END_MARKER: (
        "The slicer configuration block is incomplete ('; CONFIG_BLOCK_END' is missing). "
        "The G-code file may have been truncated."
    ),
    LocatorErrorKind.EMPTY_BLOCK: (
        "The slicer configuration block is empty. Make sure the slicer is set to include "
        "its configuration in exported G-code."
    ),
}


class ProjectAnalysisService:
    """
    Request-level orchestration of both workflows.

    3MF:   extract -> locate settings -> resolve presets -> reconcile -> describe -> LLM
    G-code: gunzip -> locate config block -> describe -> LLM

    Parsing is CPU-bound and runs in a worker thread. Input problems surface as
    SlicerLensException subclasses; preset and LLM problems degrade the report
    (warnings / fallback result) instead of failing the request.
    """

    def __init__(
        self,
        resolver: PresetResolver,
        analyzer: Optional[ProfileAnalyzer],
        max_3mf_bytes: int,
        max_gcode_bytes: int,
    ):
        self.resolver = resolver
        self.analyzer = analyzer
        self.max_3mf_bytes = max_3mf_bytes
        self.max_gcode_bytes = max_gcode_bytes

    def _require_analyzer(self) -> ProfileAnalyzer:
        if self.analyzer is None:
            raise AnalyzerUnavailableError()
        return self.analyzer

    # --- 3MF workflow ---

    async def analyze_3mf(self, filename: str, data: bytes) -> AnalysisReport:
        if not filename.lower().endswith(".3mf"):
            raise InvalidUploadError("File must be a .3mf file")
        if len(data) > self.max_3mf_bytes:
            raise UploadTooLargeError("File size", self.max_3mf_bytes)

        analyzer = self._require_analyzer()
        logger.info(f"Processing file: {filename}, size: {len(data)} bytes")

        archive, project_settings, extracted_files, config_files = await asyncio.to_thread(
            self._load_project, data
        )

        warnings: List[str] = []
        missing_parts = archive.missing_3mf_parts()
        if missing_parts:
            logger.warning(f"Archive lacks standard 3MF parts: {', '.join(missing_parts)}")
            warnings.append(f"Archive does not have a standard 3MF structure (missing {', '.join(missing_parts)})")

        print_id = project_settings.print_settings_id
        filament_id = project_settings.filament_settings_id

        presets = await self.resolver.resolve_pair(print_id, filament_id)
        for failure in presets.failures:
            logger.warning(f"Preset resolution failed ({failure.kind.value}): {failure.message}")
            warnings.append(failure.message)

        comparison = reconcile(presets.print_preset, presets.filament_preset, project_settings)
        description = describe(project_settings, comparison)
        analysis = await analyzer.analyze_profile(description)

        return AnalysisReport(
            filename=filename,
            print_settings_id=print_id,
            filament_settings_id=filament_id,
            comparison=comparison,
            profile_description=description,
            analysis=analysis,
            extracted_files=extracted_files,
            config_files=config_files,
            warnings=warnings,
        )

    @staticmethod
    def _load_project(
        data: bytes,
    ) -> Tuple[RawArchive, ProjectSettings, List[ExtractedFile], List[ConfigFile]]:
        """Everything that touches the archive bytes; runs in a worker thread."""
        archive = extract_archive(data)
        if isinstance(archive, ExtractionFailure):
            logger.error(f"Extraction error: {archive.message}")
            raise InvalidUploadError(archive.message)

        located = locate_project_settings(archive)
        if isinstance(located, LocatorFailure):
            if located.is_not_found:
                raise ProjectSettingsNotFoundError()
            raise MalformedProjectSettingsError(located.message, located.raw_text)
        return archive, located, summarize_archive(archive), collect_config_files(archive)

    async def analyze_text(self, profile_description: str) -> AnalysisResult:
        return await self._require_analyzer().analyze_profile(profile_description)

    # --- G-code troubleshooting workflow ---

    async def troubleshoot_gcode(self, filename: str, compressed: bytes, problem_description: str) -> TroubleshootingReport:
        if not problem_description.strip():
            raise InvalidUploadError("Please describe the problem you are seeing")

        analyzer = self._require_analyzer()
        original_filename = filename[:-3] if filename.lower().endswith(".gz") else filename
        logger.info(f"Received compressed file: {original_filename}, compressed size: {len(compressed)} bytes")

        block = await asyncio.to_thread(self._load_gcode_block, compressed)
        description = describe_troubleshooting(problem_description, block)
        advice = await analyzer.troubleshoot(description)

        return TroubleshootingReport(
            filename=original_filename,
            problem_description=problem_description,
            config_key_count=len(block.settings),
            skipped_lines=block.skipped_lines,
            advice=advice,
        )

    def _load_gcode_block(self, compressed: bytes) -> GcodeConfigBlock:
        text = self._gunzip_text(compressed)
        located = locate_gcode_config_block(text)
        if isinstance(located, LocatorFailure):
            logger.warning(f"G-code config block not found: {located.message}")
            raise GcodeConfigNotFoundError(GCODE_BLOCK_HINTS.get(located.kind, located.message))
        return located

    def _gunzip_text(self, compressed: bytes) -> str:
        """Decompresses at most max_gcode_bytes + 1 bytes so oversized payloads are rejected early."""
        try:
            with gzip.GzipFile(fileobj=io.BytesIO(compressed), mode="rb") as gz:
                payload = gz.read(self.max_gcode_bytes + 1)
        except (gzip.BadGzipFile, zlib.error, EOFError, OSError) as e:
            logger.error(f"Failed to decompress G-code upload: {e}")
            raise InvalidUploadError("The file could not be decompressed (corrupt gzip data)") from e

        if len(payload) > self.max_gcode_bytes:
            raise UploadTooLargeError("Decompressed file size", self.max_gcode_bytes)

        logger.info(f"Decompressed G-code size: {len(payload)} bytes")
        return payload.decode("utf-8", errors="replace")
