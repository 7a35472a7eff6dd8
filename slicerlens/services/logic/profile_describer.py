import json
from typing import Any, List

from slicerlens.schemas.settings import ComparisonItem, GcodeConfigBlock, ProjectSettings

UNKNOWN_PRESET = "Unknown"
MISSING_VALUE = "N/A"


def format_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, dict)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return json.dumps(value)


def describe(project_settings: ProjectSettings, comparison: List[ComparisonItem]) -> str:
    """
    Plain-text summary handed to the LLM: the two preset names followed by one
    `key: original -> changed` line per comparison item. Never truncated.
    """
    lines = [
        f"Filament Preset: {project_settings.filament_settings_id or UNKNOWN_PRESET}",
        f"Print Process Preset: {project_settings.print_settings_id or UNKNOWN_PRESET}",
        "",
    ]

    if comparison:
        lines.append("The following slicing parameters are further finetuned to be different from those in the presets:")
        lines.append("")
        for item in comparison:
            original = format_value(item.original_value) if item.has_original_value else MISSING_VALUE
            changed = format_value(item.changed_value) if item.has_changed_value else MISSING_VALUE
            lines.append(f"{item.key}: {original} -> {changed}")
    else:
        lines.append("No slicing parameters differ from the presets.")

    return "\n".join(lines) + "\n"


def describe_troubleshooting(problem_description: str, block: GcodeConfigBlock) -> str:
    """Problem statement followed by the full slicer configuration of the print."""
    lines = [
        "Problem description:",
        problem_description.strip(),
        "",
        f"Slicer configuration ({len(block.settings)} settings):",
    ]
    lines.extend(f"{key} = {value}" for key, value in block.settings.items())
    return "\n".join(lines) + "\n"
