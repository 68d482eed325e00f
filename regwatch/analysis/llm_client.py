"""
OpenAI transport for change analysis.

The client only moves text: it sends a system and user prompt and returns the
raw JSON body of the completion. Interpretation of that body lives in
``normalization``.
"""

import logging
import os
from typing import Optional

import openai

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"


class AnalysisUnavailableError(Exception):
    """Raised when the analysis service cannot be reached or is not configured."""


class OpenAIAnalysisClient:
    """
    Chat-completions client requesting a JSON object response.

    Features:
    - JSON object response format
    - Low sampling temperature for consistent summaries
    - Token usage logging
    """

    def __init__(self,
                 api_key: Optional[str] = None,
                 model_name: str = DEFAULT_MODEL,
                 temperature: float = 0.3,
                 timeout: float = 60,
                 base_url: Optional[str] = None):
        """
        Initialize the client.

        Args:
            api_key: OpenAI API key (or from environment)
            model_name: OpenAI model to use
            temperature: Sampling temperature for responses
            timeout: Request timeout in seconds
            base_url: API base URL (or OPENAI_BASE_URL, or the SDK default)
        """
        self.model_name = model_name
        self.temperature = temperature
        self.timeout = timeout
        self.base_url = base_url or os.getenv("OPENAI_BASE_URL") or None

        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not self.api_key:
            logger.warning("No OpenAI API key provided. Change analysis will be marked for manual review.")

    def _create_client(self) -> openai.AsyncOpenAI:
        return openai.AsyncOpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            timeout=self.timeout,
            max_retries=0
        )

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """
        Send one analysis request.

        The SDK client is opened and closed per request so its connection
        pool never outlives the event loop that created it.

        Returns:
            Raw message content of the completion

        Raises:
            AnalysisUnavailableError: If no API key is configured or the API call fails
        """
        if not self.api_key:
            raise AnalysisUnavailableError("OpenAI client not initialized")

        try:
            async with self._create_client() as client:
                response = await client.chat.completions.create(
                    model=self.model_name,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_prompt}
                    ],
                    temperature=self.temperature,
                    response_format={"type": "json_object"}
                )
        except openai.OpenAIError as e:
            raise AnalysisUnavailableError(f"OpenAI request failed: {e}") from e

        if response.usage:
            logger.debug(f"Analysis used {response.usage.total_tokens} tokens ({self.model_name})")

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
