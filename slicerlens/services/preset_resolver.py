import asyncio
import logging
from typing import Any, List, Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from slicerlens.core.exceptions import FetchExhaustedError
from slicerlens.schemas.results import ResolutionErrorKind, ResolutionFailure
from slicerlens.schemas.settings import PresetCatalogEntry, ResolvedPreset
from slicerlens.utils.retry import RetryPolicy

logger = logging.getLogger("PresetResolver")

PresetResolution = Union[ResolvedPreset, None, ResolutionFailure]


class PresetPair(BaseModel):
    """Outcome of resolving the print-process and filament presets of one project."""
    print_preset: Optional[ResolvedPreset] = None
    filament_preset: Optional[ResolvedPreset] = None
    print_failure: Optional[ResolutionFailure] = None
    filament_failure: Optional[ResolutionFailure] = None

    model_config = ConfigDict(frozen=True)

    @property
    def failures(self) -> List[ResolutionFailure]:
        return [f for f in (self.print_failure, self.filament_failure) if f is not None]


class PresetResolver:
    """
    Resolves preset names against the public slicer-profile catalog.

    Layout of the catalog (read-only, externally owned):
        {profile_root}presets.json      -> [{"name": ..., "sub_path": ...}, ...]
        {profile_root}{sub_path}        -> full preset document

    The HTTP client is injected; its lifecycle belongs to the application.
    Nothing is cached between calls.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        profile_root: str,
        catalog_file: str = "presets.json",
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.client = client
        self.profile_root = profile_root if profile_root.endswith("/") else profile_root + "/"
        self.catalog_url = f"{self.profile_root}{catalog_file}"
        self.retry_policy = retry_policy or RetryPolicy()
        self._fetch_json = self.retry_policy.wrap(self._fetch_json_once)

    async def _fetch_json_once(self, url: str) -> Any:
        """Single GET attempt. Raises on transport errors and non-2xx statuses."""
        response = await self.client.get(url)
        response.raise_for_status()
        return response.json()

    async def fetch_catalog(self) -> Union[List[PresetCatalogEntry], ResolutionFailure]:
        try:
            raw = await self._fetch_json(self.catalog_url)
        except FetchExhaustedError as e:
            return ResolutionFailure(
                kind=ResolutionErrorKind.CATALOG_UNAVAILABLE,
                message=f"Failed to fetch presets catalog: {e.last_error}",
            )
        except ValueError as e:
            logger.error(f"Presets catalog at {self.catalog_url} is not valid JSON: {e}")
            return ResolutionFailure(
                kind=ResolutionErrorKind.CATALOG_UNAVAILABLE,
                message="Presets catalog is not valid JSON",
            )

        if not isinstance(raw, list):
            logger.error(f"Presets catalog at {self.catalog_url} is a {type(raw).__name__}, expected a list")
            return ResolutionFailure(
                kind=ResolutionErrorKind.CATALOG_UNAVAILABLE,
                message="Presets catalog has an unexpected format",
            )

        catalog: List[PresetCatalogEntry] = []
        for index, item in enumerate(raw):
            try:
                catalog.append(PresetCatalogEntry.model_validate(item))
            except ValidationError:
                logger.warning(f"Skipping malformed catalog entry #{index}: {item!r:.120}")
        logger.info(f"Loaded {len(catalog)} presets from {self.catalog_url}")
        return catalog

    async def resolve_preset(
        self,
        preset_name: str,
        catalog: Optional[List[PresetCatalogEntry]] = None,
    ) -> PresetResolution:
        """
        Resolves one preset name to its detail document.

        Returns the document, None when the catalog entry has no sub_path
        (valid: not every preset publishes details), or a ResolutionFailure.
        A pre-fetched catalog may be passed to avoid a second download.
        """
        if catalog is None:
            fetched = await self.fetch_catalog()
            if isinstance(fetched, ResolutionFailure):
                return fetched.model_copy(update={"preset_name": preset_name})
            catalog = fetched

        entry = next((e for e in catalog if e.name == preset_name), None)
        if entry is None:
            logger.warning(f"No preset named {preset_name!r} in catalog")
            return ResolutionFailure(
                kind=ResolutionErrorKind.PRESET_NOT_FOUND,
                preset_name=preset_name,
                message=f"No preset found for ID: {preset_name}",
            )

        if not entry.sub_path:
            logger.info(f"Preset {preset_name!r} has no detail document")
            return None

        detail_url = f"{self.profile_root}{entry.sub_path}"
        logger.info(f"Fetching detailed preset settings from: {detail_url}")
        try:
            detail = await self._fetch_json(detail_url)
        except FetchExhaustedError as e:
            return ResolutionFailure(
                kind=ResolutionErrorKind.PRESET_DETAIL_UNAVAILABLE,
                preset_name=preset_name,
                message=f"Failed to fetch detailed settings for {preset_name}: {e.last_error}",
            )
        except ValueError:
            return ResolutionFailure(
                kind=ResolutionErrorKind.PRESET_DETAIL_UNAVAILABLE,
                preset_name=preset_name,
                message=f"Detailed settings for {preset_name} are not valid JSON",
            )

        if not isinstance(detail, dict):
            return ResolutionFailure(
                kind=ResolutionErrorKind.PRESET_DETAIL_UNAVAILABLE,
                preset_name=preset_name,
                message=f"Detailed settings for {preset_name} are not a JSON object",
            )
        return detail

    async def resolve_pair(
        self,
        print_settings_id: Optional[str],
        filament_settings_id: Optional[str],
    ) -> PresetPair:
        """
        Resolves both presets of a project. The catalog is downloaded once and
        the two detail fetches run concurrently; each side settles on its own.
        """
        if not print_settings_id and not filament_settings_id:
            return PresetPair()

        catalog = await self.fetch_catalog()
        if isinstance(catalog, ResolutionFailure):
            return PresetPair(
                print_failure=catalog.model_copy(update={"preset_name": print_settings_id}) if print_settings_id else None,
                filament_failure=catalog.model_copy(update={"preset_name": filament_settings_id}) if filament_settings_id else None,
            )

        async def _skip() -> None:
            return None

        print_result, filament_result = await asyncio.gather(
            self.resolve_preset(print_settings_id, catalog) if print_settings_id else _skip(),
            self.resolve_preset(filament_settings_id, catalog) if filament_settings_id else _skip(),
        )

        return PresetPair(
            print_preset=None if isinstance(print_result, ResolutionFailure) else print_result,
            filament_preset=None if isinstance(filament_result, ResolutionFailure) else filament_result,
            print_failure=print_result if isinstance(print_result, ResolutionFailure) else None,
            filament_failure=filament_result if isinstance(filament_result, ResolutionFailure) else None,
        )
