"""Base agent class for the Gemini-backed agents."""

import logging
from typing import Callable, Optional, TypeVar

from google.genai import types

from agents.common.utils import parse_json_response
from core.config import settings
from core.errors import ModelOutputError
from core.utils.timeouts import with_timeout

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BaseAgent:
    """Base class for all AI agents using the Google GenAI SDK."""

    # Attempts per structured call: the first try plus one retry
    max_attempts = 2

    def __init__(
        self,
        name: str,
        instructions: str,
        model: Optional[str] = None,
        client=None,
    ):
        """Initialize the agent.

        Args:
            name: Agent name, used in logs
            instructions: System instructions for the agent
            model: Gemini model to use (defaults to ``GEMINI_MODEL``)
            client: Pre-built ``genai.Client``; created lazily when omitted
        """
        self.name = name
        self.instructions = instructions
        self.model = model or settings.gemini_model
        self._client = client

    def _get_client(self):
        """Get or create the GenAI client."""
        if self._client is None:
            from google import genai

            self._client = genai.Client(api_key=settings.google_api_key)
        return self._client

    async def run(self, prompt: str, json_mode: bool = True) -> str:
        """Run the agent with a prompt.

        Args:
            prompt: User prompt
            json_mode: Ask the model for a JSON response

        Returns:
            Raw response text
        """
        client = self._get_client()
        config = types.GenerateContentConfig(
            system_instruction=self.instructions,
            response_mime_type="application/json" if json_mode else None,
            temperature=0.2,
        )
        response = await with_timeout(
            client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=config,
            ),
            f"{self.name} generation",
        )
        return response.text or ""

    async def generate_structured(self, prompt: str, validate: Callable[[dict], T]) -> T:
        """Call the model and validate its JSON output, retrying once.

        Args:
            prompt: User prompt
            validate: Turns the parsed object into a result, raising
                ModelOutputError (or a subclass) when it is unusable

        Returns:
            Whatever ``validate`` returns

        Raises:
            ModelOutputError: output still unusable after the retry
            UpstreamUnavailableError: timeout or transport failure (not retried)
        """
        last_error: Optional[ModelOutputError] = None
        for attempt in range(1, self.max_attempts + 1):
            raw = await self.run(prompt)
            try:
                return validate(parse_json_response(raw))
            except ModelOutputError as exc:
                last_error = exc
                logger.warning(
                    "%s output rejected (attempt %d/%d): %s",
                    self.name, attempt, self.max_attempts, exc.message,
                )
        raise last_error
