import logging

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from app.config import GEMINI_MODEL, GOOGLE_API_KEY
from constants import FALLBACK_RESPONSE

logger = logging.getLogger(__name__)

# Model initialization
if GOOGLE_API_KEY:
    genai.configure(api_key=GOOGLE_API_KEY)
    model = genai.GenerativeModel(GEMINI_MODEL)
else:
    model = None


class LLMError(Exception):
    status_code = 500
    detail = "Internal server error. Please try again."


class LLMUnavailableError(LLMError):
    status_code = 503
    detail = "AI Service unavailable (No API Key)"


class LLMAuthError(LLMError):
    status_code = 401
    detail = "Invalid API key"


class LLMQuotaError(LLMError):
    status_code = 429
    detail = "API quota exceeded"


class LLMPermissionError(LLMError):
    status_code = 403
    detail = "Access denied. Check your API key."


def classify_error(error: Exception) -> LLMError:
    """Maps a Gemini client failure onto the error reported to the caller."""
    message = str(error)

    if isinstance(error, google_exceptions.Unauthenticated) or "401" in message or "API_KEY" in message:
        return LLMAuthError(message)
    if isinstance(error, google_exceptions.ResourceExhausted) or "429" in message or "QUOTA" in message.upper():
        return LLMQuotaError(message)
    if isinstance(error, google_exceptions.PermissionDenied) or "403" in message:
        return LLMPermissionError(message)
    return LLMError(message)


async def generate_reply(prompt: str) -> str:
    if not model:
        raise LLMUnavailableError()

    try:
        response = await model.generate_content_async(prompt)
    except Exception as e:
        logger.error(f"AI Generation Error: {e}")
        raise classify_error(e) from e

    # .text raises ValueError when the candidate was blocked or is empty
    try:
        text = response.text
    except ValueError as e:
        logger.warning(f"AI returned no usable text: {e}")
        text = None

    return text or FALLBACK_RESPONSE
