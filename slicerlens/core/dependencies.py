from typing import Optional

import httpx
from fastapi import Depends, Request
from openai import AsyncOpenAI

from slicerlens.core.config import Settings
from slicerlens.services.analysis_service import ProjectAnalysisService
from slicerlens.services.preset_resolver import PresetResolver
from slicerlens.services.profile_analyzer import ProfileAnalyzer
from slicerlens.utils.retry import RetryPolicy


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.FETCH_TIMEOUT_S, follow_redirects=True)


def build_llm_client(settings: Settings) -> Optional[AsyncOpenAI]:
    if not settings.OPENAI_API_KEY:
        return None
    return AsyncOpenAI(api_key=settings.OPENAI_API_KEY)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_llm_client(request: Request) -> Optional[AsyncOpenAI]:
    return request.app.state.llm_client


def get_analysis_service(
    settings: Settings = Depends(get_settings),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    llm_client: Optional[AsyncOpenAI] = Depends(get_llm_client),
) -> ProjectAnalysisService:
    """Per-request service wired to the process-wide clients."""
    resolver = PresetResolver(
        http_client,
        profile_root=settings.PROFILE_ROOT,
        catalog_file=settings.PRESET_CATALOG_FILE,
        retry_policy=RetryPolicy(
            max_attempts=settings.FETCH_MAX_ATTEMPTS,
            delay_s=settings.FETCH_RETRY_DELAY_S,
            timeout_s=settings.FETCH_TIMEOUT_S,
        ),
    )
    analyzer = None
    if llm_client is not None:
        analyzer = ProfileAnalyzer(llm_client, model=settings.OPENAI_MODEL, temperature=settings.OPENAI_TEMPERATURE)

    return ProjectAnalysisService(
        resolver,
        analyzer,
        max_3mf_bytes=settings.MAX_3MF_UPLOAD_BYTES,
        max_gcode_bytes=settings.MAX_GCODE_DECOMPRESSED_BYTES,
    )
