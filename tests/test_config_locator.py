import json

from slicerlens.schemas.results import LocatorErrorKind, LocatorFailure
from slicerlens.schemas.settings import GcodeConfigBlock, ProjectSettings
from slicerlens.services.logic.archive_extractor import RawArchive
from slicerlens.services.logic.config_locator import locate_gcode_config_block, locate_project_settings
from tests.mocks.archive_factory import build_gcode

# --- Project settings (3MF) ---


def test_locate_project_settings():
    settings = {
        "filament_settings_id": ["Bambu PETG Basic @BBL X1C", "Bambu PLA Basic @BBL X1C"],
        "print_settings_id": "0.20mm Standard @BBL X1C",
        "different_settings_to_system": ["sparse_infill_density;wall_loops", "nozzle_temperature"],
        "layer_height": "0.2",
    }
    archive = RawArchive({"Metadata/project_settings.config": json.dumps(settings).encode()})

    result = locate_project_settings(archive)

    assert isinstance(result, ProjectSettings)
    assert result.filament_settings_id == "Bambu PETG Basic @BBL X1C"
    assert result.print_settings_id == "0.20mm Standard @BBL X1C"
    assert result.different_settings_to_system == ["sparse_infill_density;wall_loops", "nozzle_temperature"]
    assert result["layer_height"] == "0.2"


def test_locate_project_settings_case_insensitive_path():
    archive = RawArchive({"METADATA/Project_Settings.Config": b"{\"print_settings_id\": \"0.2mm\"}"})

    result = locate_project_settings(archive)

    assert isinstance(result, ProjectSettings)
    assert result.print_settings_id == "0.2mm"


def test_locate_project_settings_not_found():
    archive = RawArchive({"Metadata/model_settings.config": b"<config/>"})

    result = locate_project_settings(archive)

    assert isinstance(result, LocatorFailure)
    assert result.kind == LocatorErrorKind.NOT_FOUND
    assert result.is_not_found


def test_locate_project_settings_malformed_json_keeps_raw_text():
    raw = "{\"print_settings_id\": \"0.2mm\",}"
    archive = RawArchive({"Metadata/project_settings.config": raw.encode()})

    result = locate_project_settings(archive)

    assert isinstance(result, LocatorFailure)
    assert result.kind == LocatorErrorKind.MALFORMED_SETTINGS_JSON
    assert not result.is_not_found
    assert result.raw_text == raw


def test_locate_project_settings_rejects_non_object_and_bad_utf8():
    for content in (b"[1, 2, 3]", b"\xff\xfe\x00garbage"):
        result = locate_project_settings(RawArchive({"Metadata/project_settings.config": content}))
        assert isinstance(result, LocatorFailure)
        assert result.kind == LocatorErrorKind.MALFORMED_SETTINGS_JSON


def test_typed_accessors_tolerate_odd_shapes():
    settings = ProjectSettings({
        "filament_settings_id": "Generic PLA",
        "print_settings_id": ["not", "a", "string"],
        "different_settings_to_system": "layer_height",
    })

    assert settings.filament_settings_id == "Generic PLA"
    assert settings.print_settings_id is None
    assert settings.different_settings_to_system is None
    assert ProjectSettings({"filament_settings_id": []}).filament_settings_id is None


# --- G-code config block ---


def test_gcode_block_basic():
    text = "; CONFIG_BLOCK_START\n; key1 = value1\n; key2=value2\n; CONFIG_BLOCK_END\n"

    result = locate_gcode_config_block(text)

    assert isinstance(result, GcodeConfigBlock)
    assert result.settings == {"key1": "value1", "key2": "value2"}
    assert result.skipped_lines == 0
    assert (result.start_line, result.end_line) == (0, 3)


def test_gcode_block_inside_full_file():
    text = build_gcode({"layer_height": "0.2", "nozzle_temperature": "220,220", "filament_type": "PETG"})

    result = locate_gcode_config_block(text)

    assert isinstance(result, GcodeConfigBlock)
    assert result.settings == {"layer_height": "0.2", "nozzle_temperature": "220,220", "filament_type": "PETG"}


def test_gcode_block_no_start_marker():
    result = locate_gcode_config_block("G28\nG1 X10\n; CONFIG_BLOCK_END\n")

    assert isinstance(result, LocatorFailure)
    assert result.kind == LocatorErrorKind.NO_START_MARKER
    assert result.is_not_found


def test_gcode_block_no_markers_at_all():
    result = locate_gcode_config_block("G28\nG1 X10 Y10\n")

    assert isinstance(result, LocatorFailure)
    assert result.is_not_found


def test_gcode_block_no_end_marker():
    result = locate_gcode_config_block("; CONFIG_BLOCK_START\n; layer_height = 0.2\n")

    assert isinstance(result, LocatorFailure)
    assert result.kind == LocatorErrorKind.NO_END_MARKER


def test_gcode_block_empty_is_not_found_not_empty_mapping():
    result = locate_gcode_config_block("G28\n; CONFIG_BLOCK_START\n; CONFIG_BLOCK_END\n")

    assert isinstance(result, LocatorFailure)
    assert result.kind == LocatorErrorKind.EMPTY_BLOCK
    assert result.is_not_found


def test_gcode_block_end_before_start():
    text = "; CONFIG_BLOCK_END\n; CONFIG_BLOCK_START\n; a = 1\n"

    result = locate_gcode_config_block(text)

    assert isinstance(result, LocatorFailure)
    assert result.kind == LocatorErrorKind.NO_START_MARKER


def test_gcode_block_skips_lines_without_equals():
    text = "\n".join([
        "; CONFIG_BLOCK_START",
        "; layer_height = 0.2",
        "; this line has no pair",
        "",
        "; = orphan value",
        "; start_gcode = M104 S{first_layer_temperature[0]} ; comment = kept",
        "; CONFIG_BLOCK_END",
    ])

    result = locate_gcode_config_block(text)

    assert isinstance(result, GcodeConfigBlock)
    assert result.skipped_lines == 3
    assert result.settings == {
        "layer_height": "0.2",
        "start_gcode": "M104 S{first_layer_temperature[0]} ; comment = kept",
    }


def test_gcode_block_accepts_crlf_and_uncommented_lines():
    text = "G28\r\n;CONFIG_BLOCK_START\r\nlayer_height=0.28\r\n; wall_loops = 3\r\n;CONFIG_BLOCK_END\r\nM84\r\n"

    result = locate_gcode_config_block(text)

    assert isinstance(result, GcodeConfigBlock)
    assert result.settings == {"layer_height": "0.28", "wall_loops": "3"}


def test_gcode_block_empty_value_is_kept():
    result = locate_gcode_config_block("; CONFIG_BLOCK_START\n; post_process = \n; CONFIG_BLOCK_END")

    assert isinstance(result, GcodeConfigBlock)
    assert result.settings == {"post_process": ""}
