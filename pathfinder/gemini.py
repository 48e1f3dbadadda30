import os
import logging

import google.generativeai as genai
from dotenv import load_dotenv

from pathfinder.errors import ModelInvocationError
from pathfinder.prompt import AdvisorMessages


logger = logging.getLogger(__name__)
load_dotenv()

DEFAULT_MODEL = "gemini-3-flash-preview"


def configure_gemini() -> str:
    """Configure the SDK from the environment and return the model name to use"""
    api_key = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")
    if not api_key:
        logger.error(" Gemini API key is not configured")
        raise ModelInvocationError(AdvisorMessages.MISSING_API_KEY)

    genai.configure(api_key=api_key)
    return os.getenv("GEMINI_MODEL", DEFAULT_MODEL)
