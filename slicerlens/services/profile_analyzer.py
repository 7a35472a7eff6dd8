import json
import logging
from typing import Any, Optional, Type, TypeVar

import openai
from openai import AsyncOpenAI
from pydantic import BaseModel

from slicerlens.schemas.analysis import (
    AnalysisResult,
    ParameterAnalysis,
    SlicingProfileAnalysis,
    TroubleshootingAdvice,
    TroubleshootingResult,
)

logger = logging.getLogger("ProfileAnalyzer")

ContractT = TypeVar("ContractT", bound=BaseModel)

ANALYSIS_SYSTEM_PROMPT = (
    "You are an expert 3D printing consultant specializing in slicing profiles and parameter optimization."
)
ANALYSIS_USER_PROMPT = (
    "Analyze the following 3D printing slicing profile and explain the likely intentions of the creator "
    "based on the parameter modifications:\n\n{description}"
)

TROUBLESHOOTING_SYSTEM_PROMPT = (
    "You are an expert 3D printing technician. You diagnose print failures from the user's description "
    "and the exact slicer configuration used to produce the G-code, and you recommend concrete setting changes."
)
TROUBLESHOOTING_USER_PROMPT = (
    "Diagnose the following print problem. Base your suggested changes on the values in the slicer "
    "configuration and quote the current value of every parameter you suggest changing:\n\n{description}"
)

FALLBACK_TEXT = "Not available due to error"


class ProfileAnalyzer:
    """
    Thin adapter around the LLM provider.

    Sends a plain-text description and forces a single function call whose
    arguments must match a pydantic contract. Provider errors and contract
    violations never propagate: the caller gets a result flagged is_fallback.
    """

    def __init__(self, client: AsyncOpenAI, model: str = "gpt-4o", temperature: float = 0.2):
        self.client = client
        self.model = model
        self.temperature = temperature

    async def _call_structured(
        self,
        contract: Type[ContractT],
        function_name: str,
        system_prompt: str,
        user_prompt: str,
    ) -> ContractT:
        response = await self.client.chat.completions.create(
            model=self.model,
            temperature=self.temperature,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            tools=[
                {
                    "type": "function",
                    "function": {
                        "name": function_name,
                        "description": contract.__doc__ or function_name,
                        "parameters": contract.model_json_schema(),
                    },
                }
            ],
            tool_choice={"type": "function", "function": {"name": function_name}},
        )

        usage = getattr(response, "usage", None)
        if usage is not None:
            logger.info(
                f"LLM call {function_name} ({self.model}): "
                f"{usage.prompt_tokens} prompt + {usage.completion_tokens} completion tokens"
            )

        message = response.choices[0].message if response.choices else None
        tool_calls = getattr(message, "tool_calls", None) if message is not None else None
        if not tool_calls:
            raise ValueError("No function call in response")

        arguments: Any = json.loads(tool_calls[0].function.arguments)
        return contract.model_validate(arguments)

    async def analyze_profile(self, profile_description: str) -> AnalysisResult:
        try:
            analysis = await self._call_structured(
                SlicingProfileAnalysis,
                "analyzeSlicingProfile",
                ANALYSIS_SYSTEM_PROMPT,
                ANALYSIS_USER_PROMPT.format(description=profile_description),
            )
        except (openai.OpenAIError, ValueError) as e:
            logger.error(f"Profile analysis failed, returning fallback: {e}", exc_info=True)
            return self.fallback_analysis(str(e))

        return AnalysisResult(
            overall_purpose=analysis.overall_purpose,
            model_type=analysis.model_type,
            visual_effects=analysis.visual_effects,
            functional_effects=analysis.functional_effects,
            trade_offs=analysis.trade_offs,
            optimization_suggestions=analysis.optimization_suggestions,
            parameter_analysis=[
                ParameterAnalysis(
                    parameter=effect.parameter,
                    original_value=effect.original_value,
                    new_value=effect.new_value,
                    purpose=effect.purpose,
                    effect=effect.effect,
                )
                for effect in analysis.parameter_effects
            ],
        )

    async def troubleshoot(self, troubleshooting_description: str) -> TroubleshootingResult:
        try:
            advice = await self._call_structured(
                TroubleshootingAdvice,
                "troubleshootPrint",
                TROUBLESHOOTING_SYSTEM_PROMPT,
                TROUBLESHOOTING_USER_PROMPT.format(description=troubleshooting_description),
            )
        except (openai.OpenAIError, ValueError) as e:
            logger.error(f"Troubleshooting failed, returning fallback: {e}", exc_info=True)
            return self.fallback_troubleshooting(str(e))

        return TroubleshootingResult(**advice.model_dump())

    @staticmethod
    def fallback_analysis(reason: Optional[str] = None) -> AnalysisResult:
        return AnalysisResult(
            overall_purpose="Analysis failed due to an error",
            model_type="Unknown",
            visual_effects=[],
            functional_effects=[],
            trade_offs=[],
            optimization_suggestions=[],
            parameter_analysis=[],
            is_fallback=True,
            fallback_reason=reason or FALLBACK_TEXT,
        )

    @staticmethod
    def fallback_troubleshooting(reason: Optional[str] = None) -> TroubleshootingResult:
        return TroubleshootingResult(
            summary="Troubleshooting failed due to an error",
            likely_causes=[],
            suggested_changes=[],
            additional_tips=[],
            is_fallback=True,
            fallback_reason=reason or FALLBACK_TEXT,
        )
