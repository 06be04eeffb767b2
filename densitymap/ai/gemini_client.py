"""
GeminiClient — Async wrapper around Google Generative AI SDK.

Supports two runtime modes (set via AI_MOCK_MODE env var):
  - MOCK mode (default): returns deterministic canned responses.
    Use for tests and local dev without API keys.
  - REAL mode: makes actual Gemini API calls.
    Requires GEMINI_API_KEY to be set; without it every call raises
    ServiceUnavailable so callers can report "not configured" instead of
    silently receiving mock output.

Extension pattern: add new mock response keys to _MOCK_RESPONSES and
reference them in generate() calls via the response_key parameter.
"""

import logging
import os
from typing import Any, Optional

# Python 3.14 + protobuf native extension can fail when importing Gemini deps.
# Keep this as default-only so users can still override it explicitly.
os.environ.setdefault("PROTOCOL_BUFFERS_PYTHON_IMPLEMENTATION", "python")

import google.generativeai as genai

from densitymap.core.config import settings
from densitymap.core.errors import ServiceUnavailable

logger = logging.getLogger(__name__)


# Canned responses for mock mode.
# Keys map to response_key arguments in generate() calls.
_MOCK_RESPONSES: dict[str, str] = {
    "default": (
        "[MOCK] This is a placeholder Gemini response. "
        "Set AI_MOCK_MODE=false and provide GEMINI_API_KEY for real responses."
    ),
    # Lekki–Ajah corridor, Lagos: inside the Lagos bounding box.
    "hotspot": (
        '{"lat": 6.4698, "lon": 3.5852, '
        '"reasoning": "[MOCK] Fast-growing residential corridor with few shops '
        'relative to its population, east of the densest existing cluster."}'
    ),
}


class GeminiClient:
    """
    Central Gemini interface for the backend.

    Single place for mock injection, model selection and error logging.
    Don't instantiate per-request; use the module-level `gemini_client`
    singleton (tests build their own instances).
    """

    def __init__(self, api_key: Optional[str] = None, mock_mode: Optional[bool] = None) -> None:
        self.mock_mode = settings.ai_mock_mode if mock_mode is None else mock_mode
        self.api_key = settings.gemini_api_key if api_key is None else api_key
        self.configured = self.mock_mode or bool(self.api_key)
        self._genai = None

        if not self.mock_mode:
            if not self.api_key:
                logger.warning(
                    "GEMINI_API_KEY not set — hotspot prediction unavailable. "
                    "Set AI_MOCK_MODE=true to use canned responses instead."
                )
            else:
                genai.configure(api_key=self.api_key)
                self._genai = genai

        if self.mock_mode:
            logger.info("GeminiClient initialised in MOCK mode")
        else:
            logger.info("GeminiClient initialised in REAL mode (model: %s)", settings.gemini_model)

    async def generate(
        self,
        prompt: str,
        model: Optional[str] = None,
        response_key: str = "default",
        **generation_kwargs: Any,
    ) -> str:
        """
        Generate text from a Gemini model.

        Args:
            prompt:              The full prompt string.
            model:               Model name; defaults to settings.gemini_model.
            response_key:        Mock response key (ignored in real mode).
            **generation_kwargs: Passed through to GenerativeModel.generate_content_async().

        Returns:
            Generated text string.

        Raises:
            ServiceUnavailable: no API key in real mode.
            Exception:          Propagates Gemini SDK errors in real mode.
        """
        if self.mock_mode:
            return _MOCK_RESPONSES.get(response_key, _MOCK_RESPONSES["default"])

        if self._genai is None:
            raise ServiceUnavailable(
                "AI client not initialised. Make sure GEMINI_API_KEY is set correctly."
            )

        model_name = model or settings.gemini_model
        try:
            gemini_model = self._genai.GenerativeModel(model_name)
            response = await gemini_model.generate_content_async(prompt, **generation_kwargs)
            return response.text
        except Exception as exc:
            logger.error("Gemini API error (model=%s): %s", model_name, exc)
            raise

    async def generate_json(self, prompt: str, response_key: str = "default") -> str:
        """Generate with the JSON response MIME type set."""
        return await self.generate(
            prompt,
            response_key=response_key,
            generation_config={"response_mime_type": "application/json"},
        )


# Module-level singleton — import and use this everywhere
gemini_client = GeminiClient()
