"""
Prompt Enhancement Service
Turns a short song description into custom-mode generation parameters via the AI gateway
"""

import json
import logging
from typing import Optional

import httpx
from pydantic import ValidationError as SchemaError

from ..core.config import get_settings
from ..core.errors import RadioError, ValidationError
from ..database.schemas import EnhancedPrompt

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """
You are a music expert.
Your task is to take a simple song description and convert it into parameters for a music generation AI.

The lyrics should not be overly cliche, or generic.  the lyrics should also not reference the style of the music.

Return ONLY a JSON object with the following fields:

- "prompt": Full lyrics or song structure with section tags like [Intro], [Verse 1], [Pre-Chorus], [Chorus], [Bridge], [Outro].
    - This field MUST contain only:
        • section headers, descriptions of instruments, tempo, or mixing in square brackets
        • lines of singable lyrics
    - DO NOT include:
        • production or arrangement notes
        • comments, directions, or annotations like ">>" or "(guitars enter here)"
        • anything that is not meant to be sung
    - Max 5000 characters.
    - Target a 3-4 minute song.

- "style": Short description of genre and vibe ONLY.
    - No lyrics here.
    - Max 100 characters.

- "title": Short, catchy song title.
    - No quotes.
    - Max 100 characters.
"""

ENHANCE_FAILED = "Failed to enhance prompt. Please try again or disable enhance."


class EnhanceService:
    """Client for the OpenAI-compatible chat completions gateway"""

    def __init__(self, http: Optional[httpx.AsyncClient] = None):
        settings = get_settings()
        self.url = settings.AI_GATEWAY_URL
        self.api_key = settings.AI_GATEWAY_API_KEY
        self.model = settings.AI_GATEWAY_MODEL
        self.timeout = settings.AI_GATEWAY_TIMEOUT_SECONDS
        self._http = http

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def initialize(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._http = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout), transport=transport)

    async def cleanup(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    def _request_body(self, prompt: str) -> dict:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "response_format": {
                "type": "json_schema",
                "json_schema": {
                    "name": "custom_prompt",
                    "schema": EnhancedPrompt.model_json_schema(),
                },
            },
        }

    async def enhance(self, prompt: Optional[str]) -> EnhancedPrompt:
        """Enhance a prompt; raises RadioError with 400, 503 or 500"""

        if not prompt:
            raise ValidationError("Prompt is required")

        if not self.is_configured:
            raise RadioError("Enhance feature is not available (Missing API Key)", status_code=503)

        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            if self._http is not None:
                response = await self._http.post(self.url, json=self._request_body(prompt),
                                                 headers=headers, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.url, json=self._request_body(prompt), headers=headers)
            response.raise_for_status()

            content = response.json()["choices"][0]["message"]["content"]
            return EnhancedPrompt.model_validate(json.loads(content))

        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError, SchemaError) as e:
            logger.error(f"Enhance error: {e}")
            raise RadioError(ENHANCE_FAILED, status_code=500) from e


# Global enhance service instance
enhance_service = EnhanceService()
