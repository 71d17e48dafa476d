# infrastructure/llm_client.py
import openai

from config.settings import settings
from core.exceptions import MergeError
from core.logger import logger


class LLMClient:
    """Single-turn chat completion over the OpenAI API."""

    def __init__(self, api_key: str = None, model: str = None, temperature: float = None,
                 timeout: float = None, client=None):
        self.model = model or settings.OPENAI_MODEL
        self.temperature = settings.OPENAI_TEMPERATURE if temperature is None else temperature
        self.client = client or openai.AsyncOpenAI(
            api_key=api_key or settings.OPENAI_API_KEY,
            timeout=timeout or settings.HTTP_TIMEOUT,
        )

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Returns the assistant text, raising MergeError on API failure or an empty reply."""
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            )
        except openai.OpenAIError as e:
            raise MergeError(f"Completion request failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise MergeError("No response from AI")
        logger.debug(f"Completion returned {len(content)} characters from {self.model}")
        return content

    async def close(self):
        await self.client.close()
