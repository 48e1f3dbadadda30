import re
import json
import asyncio
import logging
from typing import List

import google.generativeai as genai
from pydantic import ValidationError

from pathfinder.errors import ModelInvocationError, PathFinderError, ResponseParseError
from pathfinder.gemini import configure_gemini
from pathfinder.models import RecommendationResponse, SubjectEntry
from pathfinder.prompt import AdvisorMessages, CareerAdvisorPrompts


logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def _create_model(model_name: str):
    return genai.GenerativeModel(
        model_name,
        generation_config=genai.GenerationConfig(
            response_mime_type="application/json",
            response_schema=CareerAdvisorPrompts.RECOMMENDATION_SCHEMA
        )
    )


def parse_recommendations(text: str) -> RecommendationResponse:
    """
    Parse and validate the raw model output.

    The schema constraint on the request only makes structurally valid JSON
    likely, so required fields and list types are checked here again.
    Raises ResponseParseError with the user-facing message on any failure.
    """
    raw = (text or "").strip()
    fenced = _FENCE_RE.match(raw)
    if fenced:
        raw = fenced.group(1)

    try:
        data = json.loads(raw)
        return RecommendationResponse.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.error(f" Failed to parse Gemini response: {e}")
        raise ResponseParseError(AdvisorMessages.PARSE_ERROR) from e


async def get_career_recommendations(subjects: List[SubjectEntry]) -> RecommendationResponse:
    """
    Ask Gemini for four career recommendations.

    subjects must already be filtered to complete entries with grades
    formatted as percentages ("87%"). No retry is attempted.
    """
    prompt = CareerAdvisorPrompts.build_recommendation_prompt(subjects)
    logger.info(f" Requesting recommendations for {len(subjects)} subjects")

    try:
        model_name = configure_gemini()
        model = _create_model(model_name)
        response = await asyncio.to_thread(model.generate_content, prompt)
    except PathFinderError:
        raise
    except Exception as e:
        logger.error(f" Recommendation request failed: {e}")
        raise ModelInvocationError(str(e)) from e

    try:
        result_text = response.text
    except ValueError as e:
        # blocked or empty candidates: no text part to read
        logger.warning(f" Gemini returned no text: {e}")
        result_text = ""

    recommendations = parse_recommendations(result_text)
    logger.info(f" Received {len(recommendations.recommendations)} recommendations")
    return recommendations
