from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel, model_serializer

# Slicer documents are open-ended: keys are slicer-defined, values are whatever
# json.loads produced. Nested containers are left untyped.
JSONScalar = Union[str, int, float, bool, None]
JSONValue = Union[JSONScalar, List[Any], Dict[str, Any]]

ResolvedPreset = Dict[str, Any]


class ProjectSettings(RootModel[Dict[str, Any]]):
    """
    Parsed Metadata/project_settings.config.

    Only the handful of keys the comparison pipeline depends on get typed
    accessors; everything else passes through untouched.
    """

    def __getitem__(self, key: str) -> JSONValue:
        return self.root[key]

    def __contains__(self, key: object) -> bool:
        return key in self.root

    def get(self, key: str, default: Any = None) -> JSONValue:
        return self.root.get(key, default)

    @property
    def filament_settings_id(self) -> Optional[str]:
        """First filament preset name (the slicer stores one per extruder)."""
        value = self.root.get("filament_settings_id")
        if isinstance(value, list):
            value = value[0] if value else None
        if isinstance(value, str) and value:
            return value
        return None

    @property
    def print_settings_id(self) -> Optional[str]:
        value = self.root.get("print_settings_id")
        if isinstance(value, str) and value:
            return value
        return None

    @property
    def different_settings_to_system(self) -> Optional[List[Any]]:
        """
        Raw differs-from-system groups: index 0 = process keys, index 1 = filament keys.
        None when the key is absent or not a list.
        """
        value = self.root.get("different_settings_to_system")
        if isinstance(value, list):
            return value
        return None


class GcodeConfigBlock(BaseModel):
    """Flat key/value pairs parsed from a CONFIG_BLOCK_START .. CONFIG_BLOCK_END region."""
    settings: Dict[str, str] = Field(default_factory=dict)
    skipped_lines: int = Field(0, description="Lines inside the block without a key = value pair")
    start_line: int = Field(..., description="0-based index of the start marker line")
    end_line: int = Field(..., description="0-based index of the end marker line")


class PresetCatalogEntry(BaseModel):
    name: str
    sub_path: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class ComparisonSource(str, Enum):
    PRINT = "print"
    FILAMENT = "filament"


class ComparisonItem(BaseModel):
    """
    One differs-from-system key with its preset and project values.

    original_value / changed_value are left unset when the key is missing from
    the respective document. Unset is not the same as an explicit null and is
    dropped on serialization.
    """
    key: str
    original_value: JSONValue = None
    changed_value: JSONValue = None
    found: bool
    source: ComparisonSource

    @property
    def has_original_value(self) -> bool:
        return "original_value" in self.model_fields_set

    @property
    def has_changed_value(self) -> bool:
        return "changed_value" in self.model_fields_set

    @model_serializer(mode="wrap")
    def _drop_missing_values(self, handler):
        data = handler(self)
        if not self.has_original_value:
            data.pop("original_value", None)
        if not self.has_changed_value:
            data.pop("changed_value", None)
        return data
