from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field

from slicerlens.schemas.settings import ComparisonItem

ParameterValue = Union[str, int, float, bool]


# --- LLM output contracts ---

class ParameterEffect(BaseModel):
    parameter: str = Field(..., description="The name of the modified parameter")
    original_value: ParameterValue = Field(..., description="The original value of the parameter")
    new_value: ParameterValue = Field(..., description="The new value of the parameter")
    purpose: str = Field(..., description="The likely purpose of this specific modification")
    effect: str = Field(..., description="The expected effect on the print")


class SlicingProfileAnalysis(BaseModel):
    """Structured output the LLM must return for a profile analysis."""
    overall_purpose: str = Field(..., description="The overall purpose/goal of these modifications")
    model_type: str = Field(..., description="What type of model or print the creator is likely trying to optimize for")
    visual_effects: List[str] = Field(..., description="The expected visual effects of these changes")
    functional_effects: List[str] = Field(..., description="The expected functional effects of these changes")
    trade_offs: List[str] = Field(..., description="Potential trade-offs or compromises these settings might introduce")
    optimization_suggestions: List[str] = Field(..., description="Suggestions for further optimization if applicable")
    parameter_effects: List[ParameterEffect] = Field(..., description="Analysis of each parameter modification")


class SuggestedChange(BaseModel):
    parameter: str = Field(..., description="Slicer setting to change")
    current_value: str = Field(..., description="Value found in the G-code configuration block")
    suggested_value: str = Field(..., description="Recommended new value")
    reason: str = Field(..., description="Why this change addresses the problem")


class TroubleshootingAdvice(BaseModel):
    """Structured output the LLM must return for a troubleshooting request."""
    summary: str = Field(..., description="Short diagnosis of the described print problem")
    likely_causes: List[str] = Field(..., description="Most likely causes, most probable first")
    suggested_changes: List[SuggestedChange] = Field(..., description="Concrete setting changes to try")
    additional_tips: List[str] = Field(..., description="Hardware, material or environment checks")


# --- Application results ---

class ParameterAnalysis(BaseModel):
    parameter: str
    original_value: ParameterValue
    new_value: ParameterValue
    purpose: str
    effect: str


class AnalysisResult(BaseModel):
    overall_purpose: str
    model_type: str
    visual_effects: List[str]
    functional_effects: List[str]
    trade_offs: List[str]
    optimization_suggestions: List[str]
    parameter_analysis: List[ParameterAnalysis] = Field(default_factory=list)
    is_fallback: bool = False
    fallback_reason: Optional[str] = None


class TroubleshootingResult(TroubleshootingAdvice):
    is_fallback: bool = False
    fallback_reason: Optional[str] = None


class ExtractedFile(BaseModel):
    name: str
    size: int
    type: str
    content: Optional[str] = None  # Only for text files


class ConfigFile(BaseModel):
    name: str
    path: str
    content: Any  # Parsed JSON content


class AnalysisReport(BaseModel):
    """Everything the 3MF analysis endpoint returns."""
    filename: str
    print_settings_id: Optional[str] = None
    filament_settings_id: Optional[str] = None
    comparison: List[ComparisonItem] = Field(default_factory=list)
    profile_description: str
    analysis: AnalysisResult
    extracted_files: List[ExtractedFile] = Field(default_factory=list)
    config_files: List[ConfigFile] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class TroubleshootingReport(BaseModel):
    filename: str
    problem_description: str
    config_key_count: int
    skipped_lines: int = 0
    advice: TroubleshootingResult


class ProfileTextRequest(BaseModel):
    profile_description: str = Field(..., min_length=1)
