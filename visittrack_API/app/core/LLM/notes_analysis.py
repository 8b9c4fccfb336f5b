# notes_analysis.py
# Description: Short LLM analysis of visit notes (sentiment, key insight, next action)
#
# Imports
from typing import Optional, TYPE_CHECKING
#
# Third-party imports
import httpx
from loguru import logger
#
if TYPE_CHECKING:
    from visittrack_API.app.core.config import AnalysisConfig
#
#######################################################################################################################
#
# Functions:

NOTES_ANALYSIS_PROMPT = """You are a professional sales assistant. Analyse the following visit notes for the client "{client_name}".

Notes: "{notes}"

Give a short analysis (under 50 words) covering:
1. Sentiment (positive / neutral / negative)
2. Key insight
3. Suggested next action

Answer in plain text."""


class NotesAnalysisError(Exception):
    """Raised when the notes analysis call cannot produce a result."""
    pass


def build_prompt(notes: str, client_name: str) -> str:
    return NOTES_ANALYSIS_PROMPT.format(client_name=client_name, notes=notes)


async def analyze_visit_notes(
    notes: str,
    client_name: str,
    config: "AnalysisConfig",
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    """
    Ask the configured model for a short analysis of one visit's notes.

    Raises:
        NotesAnalysisError: Missing key, empty notes, transport failure or an empty answer.
    """
    if not config.api_key:
        raise NotesAnalysisError("No analysis API key is configured")
    if not notes or not notes.strip():
        raise NotesAnalysisError("Visit has no notes to analyse")

    url = f"{config.base_url.rstrip('/')}/models/{config.model}:generateContent"
    payload = {"contents": [{"parts": [{"text": build_prompt(notes, client_name)}]}]}
    logger.debug(f"Requesting notes analysis for client '{client_name}' from model {config.model}")

    try:
        if client is not None:
            response = await client.post(url, params={"key": config.api_key}, json=payload)
        else:
            async with httpx.AsyncClient(timeout=config.timeout_seconds) as temp_client:
                response = await temp_client.post(url, params={"key": config.api_key}, json=payload)
        response.raise_for_status()
        result = response.json()
    except httpx.HTTPStatusError as e:
        logger.error(f"Notes analysis API error: {e.response.status_code}")
        raise NotesAnalysisError(f"Analysis request failed: HTTP {e.response.status_code}") from e
    except httpx.HTTPError as e:
        logger.error(f"Notes analysis network error: {e}")
        raise NotesAnalysisError(f"Analysis request failed: {e}") from e
    except ValueError as e:
        raise NotesAnalysisError("Analysis API returned a non-JSON response") from e

    try:
        parts = result["candidates"][0]["content"]["parts"]
        text = "".join(part.get("text", "") for part in parts).strip()
    except (KeyError, IndexError, TypeError):
        text = ""
    if not text:
        logger.warning(f"Notes analysis returned no text for client '{client_name}'")
        raise NotesAnalysisError("The model returned no analysis")
    return text

#
# End of notes_analysis.py
########################################################################################################################
