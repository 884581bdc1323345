"""Chat completion client for an OpenAI-compatible endpoint (OpenRouter by default)."""

import logging
from dataclasses import dataclass
from typing import Optional

import openai
from openai import AsyncOpenAI

from storechat.config import ModelConfig
from storechat.integrations.errors import ExternalServiceError

logger = logging.getLogger(__name__)


@dataclass
class LLMResult:
    text: str
    input_tokens: int = 0
    output_tokens: int = 0


class LLMClient:
    def __init__(self, model_config: ModelConfig, timeout_sec: float,
                 client: Optional[AsyncOpenAI] = None) -> None:
        self._config = model_config
        headers = {"X-Title": model_config.app_title}
        if model_config.http_referer:
            headers["HTTP-Referer"] = model_config.http_referer
        self._client = client or AsyncOpenAI(
            api_key=model_config.api_key or "unset",
            base_url=model_config.api_base_url,
            timeout=timeout_sec,
            max_retries=0,
            default_headers=headers,
        )

    @property
    def default_model(self) -> str:
        return self._config.llm_model

    async def complete(
        self,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
        model: Optional[str] = None,
        json_mode: bool = True,
    ) -> LLMResult:
        kwargs = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        try:
            response = await self._client.chat.completions.create(
                model=model or self._config.llm_model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                **kwargs,
            )
        except openai.OpenAIError as exc:
            status = getattr(exc, "status_code", None)
            raise ExternalServiceError("llm", f"{type(exc).__name__}: {exc}", status_code=status) from exc

        if not response.choices:
            raise ExternalServiceError("llm", "completion returned no choices")
        usage = response.usage
        return LLMResult(
            text=response.choices[0].message.content or "",
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
        )
