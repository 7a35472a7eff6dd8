"""
Config Locator - finds the slicer configuration embedded in an upload.

Two sources are supported:
- 3MF projects: Metadata/project_settings.config, a JSON document written by
  OrcaSlicer / Bambu Studio.
- Plain G-code: the trailing comment block written by OrcaSlicer-family slicers

    ; CONFIG_BLOCK_START
    ; layer_height = 0.2
    ; ...
    ; CONFIG_BLOCK_END
"""
import json
import logging
import re
from typing import Dict, Optional, Union

from slicerlens.schemas.results import LocatorErrorKind, LocatorFailure
from slicerlens.schemas.settings import GcodeConfigBlock, ProjectSettings
from slicerlens.services.logic.archive_extractor import RawArchive

logger = logging.getLogger(__name__)

PROJECT_SETTINGS_PATH = "Metadata/project_settings.config"

CONFIG_BLOCK_START = "CONFIG_BLOCK_START"
CONFIG_BLOCK_END = "CONFIG_BLOCK_END"

_COMMENT_PREFIX = re.compile(r"^\s*;\s?")


def locate_project_settings(archive: RawArchive) -> Union[ProjectSettings, LocatorFailure]:
    """
    Finds Metadata/project_settings.config (any case) and parses it as JSON.

    Returns NOT_FOUND when no entry matches, MALFORMED_SETTINGS_JSON (with the
    raw text attached) when the entry is not a JSON object.
    """
    match = archive.find(PROJECT_SETTINGS_PATH)
    if match is None:
        logger.info(f"No {PROJECT_SETTINGS_PATH} in archive")
        return LocatorFailure(
            kind=LocatorErrorKind.NOT_FOUND,
            message=f"{PROJECT_SETTINGS_PATH} not found in archive",
        )

    stored_path, content = match
    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError as e:
        logger.warning(f"{stored_path} is not valid UTF-8: {e}")
        return LocatorFailure(
            kind=LocatorErrorKind.MALFORMED_SETTINGS_JSON,
            message=f"{stored_path} is not valid UTF-8 text",
            raw_text=content.decode("utf-8", errors="replace"),
        )

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning(f"Error parsing {stored_path} as JSON: {e}")
        return LocatorFailure(
            kind=LocatorErrorKind.MALFORMED_SETTINGS_JSON,
            message=f"{stored_path} is not valid JSON: {e.msg} (line {e.lineno}, column {e.colno})",
            raw_text=text,
        )

    if not isinstance(data, dict):
        return LocatorFailure(
            kind=LocatorErrorKind.MALFORMED_SETTINGS_JSON,
            message=f"{stored_path} must contain a JSON object, got {type(data).__name__}",
            raw_text=text,
        )

    logger.info(f"Found project settings in: {stored_path} ({len(data)} keys)")
    return ProjectSettings(data)


def _comment_body(line: str) -> str:
    """Line content with surrounding whitespace and a leading ';' comment removed."""
    return _COMMENT_PREFIX.sub("", line, count=1).strip()


def locate_gcode_config_block(text: str) -> Union[GcodeConfigBlock, LocatorFailure]:
    """
    Parses the CONFIG_BLOCK_START .. CONFIG_BLOCK_END region of G-code text.

    The first start marker before the first end marker opens the block; the
    scan stops at the first end marker. A missing marker or a block with no
    lines between the markers is reported as a not-found failure, never as an
    empty mapping.
    """
    lines = text.splitlines()

    start_index: Optional[int] = None
    end_index: Optional[int] = None
    for i, line in enumerate(lines):
        body = _comment_body(line)
        if start_index is None and body.startswith(CONFIG_BLOCK_START):
            start_index = i
            continue
        if body.startswith(CONFIG_BLOCK_END):
            end_index = i
            break

    if start_index is None:
        return LocatorFailure(
            kind=LocatorErrorKind.NO_START_MARKER,
            message=f"No '; {CONFIG_BLOCK_START}' marker found before the end of the configuration block",
        )
    if end_index is None:
        return LocatorFailure(
            kind=LocatorErrorKind.NO_END_MARKER,
            message=f"'; {CONFIG_BLOCK_START}' found on line {start_index + 1} but no '; {CONFIG_BLOCK_END}' follows",
        )
    if start_index >= end_index - 1:
        return LocatorFailure(
            kind=LocatorErrorKind.EMPTY_BLOCK,
            message=f"Configuration block on lines {start_index + 1}-{end_index + 1} is empty",
        )

    settings: Dict[str, str] = {}
    skipped = 0
    for line in lines[start_index + 1:end_index]:
        body = _comment_body(line)
        key, sep, value = body.partition("=")
        key = key.strip()
        if not sep or not key:
            skipped += 1
            logger.debug(f"Skipping config block line without key = value: {line!r}")
            continue
        settings[key] = value.strip()

    if skipped:
        logger.info(f"Config block: parsed {len(settings)} settings, skipped {skipped} line(s)")

    return GcodeConfigBlock(
        settings=settings,
        skipped_lines=skipped,
        start_line=start_index,
        end_line=end_index,
    )
