"""
Central AI Manager service for handling interactions with AI providers.

Provider selection follows the configured server-side keys: OpenAI first,
then Groq (OpenAI-compatible endpoint), then Google Gemini.
"""
import asyncio
from dataclasses import dataclass
from typing import Optional

import structlog

from core.config import settings, GEMINI_MODEL, GEMINI_MAX_TOKENS
from core.exceptions import AIServiceException
from models.models import AiProviderEnum

logger = structlog.get_logger("ai_manager")


class AIRetryConfig:
    """Configuration for AI service retry logic."""

    def __init__(
        self,
        max_retries: int = 0,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        backoff_multiplier: float = 2.0,
        timeout_seconds: float = 60.0,
    ):
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.backoff_multiplier = backoff_multiplier
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls) -> "AIRetryConfig":
        return cls(max_retries=settings.ai_max_retries, timeout_seconds=settings.ai_timeout_seconds)


@dataclass
class AIResult:
    text: str
    provider: AiProviderEnum
    model: str


def select_provider() -> AiProviderEnum:
    """Pick the first provider that has a configured key."""
    if settings.openai_api_key:
        return AiProviderEnum.OpenAI
    if settings.groq_api_key:
        return AiProviderEnum.Groq
    if settings.gemini_api_key:
        return AiProviderEnum.Google
    raise AIServiceException(detail="No API key available for OpenAI, Groq or Gemini")


class AIManager:
    """
    Thin wrapper over the provider SDKs.

    Callers hand over a prompt (and optionally a system instruction) and get
    back the generated text together with the provider that produced it.
    """

    def __init__(self, retry_config: Optional[AIRetryConfig] = None):
        self.retry_config = retry_config or AIRetryConfig.from_settings()
        self._openai_client = None
        self._groq_client = None
        self._gemini_client = None

    def _get_openai_client(self, provider: AiProviderEnum):
        from openai import AsyncOpenAI

        if provider == AiProviderEnum.Groq:
            if self._groq_client is None:
                self._groq_client = AsyncOpenAI(
                    api_key=settings.groq_api_key,
                    base_url=settings.groq_base_url,
                    timeout=self.retry_config.timeout_seconds,
                    max_retries=0,
                )
            return self._groq_client

        if self._openai_client is None:
            self._openai_client = AsyncOpenAI(
                api_key=settings.openai_api_key,
                timeout=self.retry_config.timeout_seconds,
                max_retries=0,
            )
        return self._openai_client

    def _get_gemini_client(self):
        if self._gemini_client is None:
            from google import genai

            self._gemini_client = genai.Client(api_key=settings.gemini_api_key)
        return self._gemini_client

    async def _retry_with_backoff(self, func, *args, **kwargs):
        """Run ``func`` with a timeout, retrying with exponential backoff when configured."""
        last_exception = None

        for attempt in range(self.retry_config.max_retries + 1):
            try:
                return await asyncio.wait_for(func(*args, **kwargs), timeout=self.retry_config.timeout_seconds)
            except asyncio.TimeoutError as e:
                last_exception = e
                logger.warning("AI request timeout", attempt=attempt + 1, timeout=self.retry_config.timeout_seconds)
            except AIServiceException:
                raise
            except Exception as e:
                last_exception = e
                logger.warning("AI request failed", attempt=attempt + 1, error=str(e))

            if attempt < self.retry_config.max_retries:
                delay = min(
                    self.retry_config.base_delay * (self.retry_config.backoff_multiplier ** attempt),
                    self.retry_config.max_delay,
                )
                logger.info("Retrying AI request", delay_seconds=delay, attempt=attempt + 1)
                await asyncio.sleep(delay)

        if isinstance(last_exception, asyncio.TimeoutError):
            raise AIServiceException(
                detail=f"AI request timeout after {self.retry_config.timeout_seconds} seconds"
            )
        raise AIServiceException(detail=f"AI request failed: {last_exception}")

    def _model_for(self, provider: AiProviderEnum, model: Optional[str]) -> str:
        if provider == AiProviderEnum.OpenAI:
            return model or settings.openai_model
        if provider == AiProviderEnum.Groq:
            return settings.groq_model
        return GEMINI_MODEL

    async def _chat_completion(
        self, provider, model, prompt, system_instruction, temperature, max_tokens
    ) -> str:
        client = self._get_openai_client(provider)
        messages = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        messages.append({"role": "user", "content": prompt})

        kwargs = {"model": model, "messages": messages, "temperature": temperature}
        if max_tokens:
            kwargs["max_tokens"] = max_tokens
        response = await client.chat.completions.create(**kwargs)
        return response.choices[0].message.content or ""

    async def _gemini_generate(self, model, prompt, system_instruction, temperature, max_tokens) -> str:
        from google.genai import types

        client = self._get_gemini_client()
        config = types.GenerateContentConfig(
            temperature=temperature,
            max_output_tokens=max_tokens or GEMINI_MAX_TOKENS,
            system_instruction=system_instruction,
        )
        response = await client.aio.models.generate_content(model=model, contents=prompt, config=config)
        return response.text or ""

    async def generate_text(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None,
    ) -> AIResult:
        """
        Generate text with the first configured provider.

        Args:
            prompt: User prompt
            system_instruction: Optional system message
            temperature: Sampling temperature
            max_tokens: Optional output cap
            model: OpenAI model override (ignored by the other providers)

        Raises:
            AIServiceException: no provider configured, provider error, or empty answer
        """
        provider = select_provider()
        model_name = self._model_for(provider, model)

        logger.info("Starting AI generation", provider=provider.value, model=model_name, prompt_chars=len(prompt))

        if provider == AiProviderEnum.Google:
            text = await self._retry_with_backoff(
                self._gemini_generate, model_name, prompt, system_instruction, temperature, max_tokens
            )
        else:
            text = await self._retry_with_backoff(
                self._chat_completion, provider, model_name, prompt, system_instruction, temperature, max_tokens
            )

        if not text or not text.strip():
            raise AIServiceException(detail="Le modèle n'a renvoyé aucun contenu", provider=provider.value)

        logger.info("AI generation completed", provider=provider.value, output_chars=len(text))
        return AIResult(text=text.strip(), provider=provider, model=model_name)


def get_ai_manager() -> AIManager:
    """FastAPI dependency; tests override it with a fake manager."""
    return AIManager()
