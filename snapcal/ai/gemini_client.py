"""Gemini AI client wrapper for text and vision capabilities."""

import asyncio
import logging
from typing import Optional

from google import genai
from google.genai import types

from ..config import config
from ..utils.error_handlers import APIError

logger = logging.getLogger(__name__)


class GeminiClient:
    """Wrapper for the Google Gemini API with text and vision support.

    Each call is a single request: no retries and no local timeout.
    """

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        """Initialize the Gemini client."""
        api_key = api_key or config.GEMINI_API_KEY
        if not api_key:
            raise APIError("No Gemini API key configured")

        self.client = genai.Client(api_key=api_key)
        self.model = model or config.GEMINI_MODEL

        logger.info(f"Gemini client initialized (model: {self.model})")

    async def _generate(self, contents, operation_name: str) -> Optional[str]:
        """Run one generate_content call off the event loop."""
        try:
            response = await asyncio.to_thread(
                self.client.models.generate_content,
                model=self.model,
                contents=contents
            )
        except Exception as e:
            logger.error(f"{operation_name} failed: {e}")
            return None

        text = response.text
        if not text:
            logger.warning(f"{operation_name} returned an empty response")
            return None
        return text

    async def send_text(self, prompt: str) -> Optional[str]:
        """
        Send a text prompt to Gemini and get a response.

        Args:
            prompt: The text prompt to send.

        Returns:
            The generated text response, or None if failed.
        """
        return await self._generate(prompt, "Gemini text request")

    async def send_image(
        self,
        image_bytes: bytes,
        prompt: str,
        mime_type: str = "image/jpeg"
    ) -> Optional[str]:
        """
        Send an image with a prompt to Gemini for vision analysis.

        Args:
            image_bytes: Raw bytes of the image.
            prompt: The prompt describing what to extract/analyze.
            mime_type: MIME type of the image (default: image/jpeg).

        Returns:
            The generated text response, or None if failed.
        """
        image_part = types.Part.from_bytes(
            data=image_bytes,
            mime_type=mime_type
        )
        return await self._generate([prompt, image_part], "Gemini vision request")

    async def send_image_with_json(
        self,
        image_bytes: bytes,
        prompt: str,
        mime_type: str = "image/jpeg"
    ) -> Optional[str]:
        """
        Send an image with a prompt expecting JSON response.

        Adds JSON formatting instructions to the prompt.
        """
        json_prompt = f"""{prompt}

IMPORTANT: Respond ONLY with valid JSON. No markdown code blocks, no explanations.
Just the raw JSON array or object."""

        return await self.send_image(image_bytes, json_prompt, mime_type)


# Singleton instance - lazy initialization
_gemini_client = None


def get_gemini_client() -> GeminiClient:
    """Get or create the Gemini client singleton."""
    global _gemini_client
    if _gemini_client is None:
        _gemini_client = GeminiClient()
    return _gemini_client
