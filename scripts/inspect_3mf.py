"""
Offline inspection of a 3MF project: lists the archive, shows the preset names
and the differs-from-system comparison, then prints the profile description
that would be sent to the LLM.

    python scripts/inspect_3mf.py project.3mf
    python scripts/inspect_3mf.py project.3mf --print-preset process.json --filament-preset filament.json
    python scripts/inspect_3mf.py project.3mf --online
"""
import argparse
import asyncio
import json
import os
import sys
from pathlib import Path

import httpx
from rich.console import Console
from rich.table import Table

# Add project root to sys.path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from slicerlens.core.config import settings
from slicerlens.schemas.results import ExtractionFailure, LocatorFailure
from slicerlens.services.logic.archive_extractor import extract_archive, summarize_archive
from slicerlens.services.logic.config_locator import locate_project_settings
from slicerlens.services.logic.diff_reconciler import reconcile
from slicerlens.services.logic.profile_describer import describe, format_value
from slicerlens.services.preset_resolver import PresetResolver

console = Console()


def load_preset_file(path: str | None):
    if not path:
        return None
    return json.loads(Path(path).read_text(encoding="utf-8"))


async def fetch_presets(print_id, filament_id):
    async with httpx.AsyncClient(timeout=settings.FETCH_TIMEOUT_S) as client:
        resolver = PresetResolver(client, settings.PROFILE_ROOT, settings.PRESET_CATALOG_FILE)
        pair = await resolver.resolve_pair(print_id, filament_id)
    for failure in pair.failures:
        console.print(f"⚠️  [yellow]{failure.message}[/yellow]")
    return pair.print_preset, pair.filament_preset


def inspect(args) -> int:
    source = Path(args.file)
    if not source.exists():
        console.print(f"❌ File not found: {source}")
        return 1

    archive = extract_archive(source.read_bytes())
    if isinstance(archive, ExtractionFailure):
        console.print(f"❌ {archive.kind.value}: {archive.message}")
        return 1

    files = Table(title=f"{source.name} ({len(archive)} entries)")
    files.add_column("Path")
    files.add_column("Type")
    files.add_column("Size", justify="right")
    for entry in summarize_archive(archive):
        files.add_row(entry.name, entry.type, f"{entry.size:,}")
    console.print(files)

    missing = archive.missing_3mf_parts()
    if missing:
        console.print(f"⚠️  Missing standard 3MF parts: {', '.join(missing)}")

    project = locate_project_settings(archive)
    if isinstance(project, LocatorFailure):
        console.print(f"❌ {project.kind.value}: {project.message}")
        return 1

    console.print(f"🧵 Filament preset: [bold]{project.filament_settings_id}[/bold]")
    console.print(f"🖨️  Print preset:    [bold]{project.print_settings_id}[/bold]")

    if args.online:
        print_preset, filament_preset = asyncio.run(
            fetch_presets(project.print_settings_id, project.filament_settings_id)
        )
    else:
        print_preset = load_preset_file(args.print_preset)
        filament_preset = load_preset_file(args.filament_preset)

    items = reconcile(print_preset, filament_preset, project)
    diff = Table(title="Differs from system")
    diff.add_column("Key")
    diff.add_column("Original")
    diff.add_column("Changed")
    diff.add_column("Source")
    diff.add_column("Found")
    for item in items:
        diff.add_row(
            item.key,
            format_value(item.original_value) if item.has_original_value else "-",
            format_value(item.changed_value) if item.has_changed_value else "-",
            item.source.value,
            "✅" if item.found else "❌",
        )
    console.print(diff)

    console.rule("Profile description")
    console.print(describe(project, items), markup=False)
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Inspect the slicer settings of a 3MF project")
    parser.add_argument("file", help="Path to the .3mf file")
    parser.add_argument("--print-preset", help="Local JSON file of the print-process preset")
    parser.add_argument("--filament-preset", help="Local JSON file of the filament preset")
    parser.add_argument("--online", action="store_true", help="Resolve presets from the remote catalog")
    sys.exit(inspect(parser.parse_args()))
