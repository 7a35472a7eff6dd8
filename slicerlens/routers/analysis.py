import logging

from fastapi import APIRouter, Depends, File, Form, UploadFile

from slicerlens.core.dependencies import get_analysis_service
from slicerlens.schemas.analysis import (
    AnalysisReport,
    AnalysisResult,
    ProfileTextRequest,
    TroubleshootingReport,
)
from slicerlens.services.analysis_service import ProjectAnalysisService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Analysis"])


@router.post("/analyze", response_model=AnalysisReport)
async def analyze_project(
    file: UploadFile = File(...),
    service: ProjectAnalysisService = Depends(get_analysis_service),
):
    """
    Analyzes an uploaded .3mf project: compares its settings with the presets
    it was derived from and explains the modifications.
    """
    data = await file.read()
    return await service.analyze_3mf(file.filename or "unknown_file", data)


@router.post("/analyze-text", response_model=AnalysisResult)
async def analyze_profile_text(
    request: ProfileTextRequest,
    service: ProjectAnalysisService = Depends(get_analysis_service),
):
    """Analyzes an already rendered profile description."""
    return await service.analyze_text(request.profile_description)


@router.post("/troubleshooting", response_model=TroubleshootingReport)
async def troubleshoot_print(
    file: UploadFile = File(..., description="gzip-compressed G-code"),
    problem_description: str = Form(...),
    service: ProjectAnalysisService = Depends(get_analysis_service),
):
    """
    Diagnoses a print problem from the slicer configuration embedded in a
    gzip-compressed G-code file and a free-text description.
    """
    compressed = await file.read()
    return await service.troubleshoot_gcode(file.filename or "unknown_file", compressed, problem_description)
