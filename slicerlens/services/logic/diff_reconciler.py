import logging
from typing import Any, Dict, List, Mapping, Optional

from slicerlens.schemas.settings import (
    ComparisonItem,
    ComparisonSource,
    ProjectSettings,
    ResolvedPreset,
)

logger = logging.getLogger(__name__)

# different_settings_to_system slot per category
PRINT_GROUP_INDEX = 0
FILAMENT_GROUP_INDEX = 1


def split_setting_keys(group: str) -> List[str]:
    """'a;b;;c;' -> ['a', 'b', 'c']"""
    return [key.strip() for key in group.split(";") if key.strip()]


def _first_element(value: Any) -> Any:
    # Filament settings are stored per extruder; the first slot is the one compared.
    if isinstance(value, list) and value:
        return value[0]
    return value


def _build_item(
    key: str,
    preset: Mapping[str, Any],
    project: Mapping[str, Any],
    source: ComparisonSource,
) -> ComparisonItem:
    values: Dict[str, Any] = {}
    if key in preset:
        values["original_value"] = preset[key]
    if key in project:
        values["changed_value"] = project[key]

    if source is ComparisonSource.FILAMENT:
        values = {field: _first_element(value) for field, value in values.items()}

    return ComparisonItem(key=key, found=key in preset, source=source, **values)


def _group(groups: List[Any], index: int) -> Optional[str]:
    if len(groups) <= index:
        return None
    group = groups[index]
    if not isinstance(group, str):
        logger.warning(f"different_settings_to_system[{index}] is a {type(group).__name__}, expected a string")
        return None
    return group


def reconcile(
    print_preset: Optional[ResolvedPreset],
    filament_preset: Optional[ResolvedPreset],
    project_settings: ProjectSettings,
) -> List[ComparisonItem]:
    """
    Pairs every differs-from-system key with its preset value and project value.

    Print keys come first (in listed order), filament keys second; the same
    key may appear in both. A category whose preset is unresolved is skipped.
    Print values are compared as-is; filament values that are non-empty lists
    are reduced to their first element on both sides.
    """
    groups = project_settings.different_settings_to_system
    if groups is None:
        logger.info("No different_settings_to_system list in project settings")
        return []

    project = project_settings.root
    items: List[ComparisonItem] = []

    print_group = _group(groups, PRINT_GROUP_INDEX)
    if print_group is not None and print_preset is not None:
        keys = split_setting_keys(print_group)
        logger.debug(f"Found {len(keys)} print setting keys to compare: {keys}")
        items.extend(_build_item(k, print_preset, project, ComparisonSource.PRINT) for k in keys)

    filament_group = _group(groups, FILAMENT_GROUP_INDEX)
    if filament_group is not None and filament_preset is not None:
        keys = split_setting_keys(filament_group)
        logger.debug(f"Found {len(keys)} filament setting keys to compare: {keys}")
        items.extend(_build_item(k, filament_preset, project, ComparisonSource.FILAMENT) for k in keys)

    logger.info(f"Processed {len(items)} total comparison items")
    return items
