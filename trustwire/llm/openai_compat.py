"""OpenAI-compatible provider: chat completions and embeddings over plain HTTP.

Works against OpenAI itself and any server that mirrors its REST shape
(DeepSeek, Ollama, vLLM).
"""

from __future__ import annotations

import logging

import httpx

from trustwire.llm import register_provider
from trustwire.llm.base import BaseLLMProvider, EmbeddingResponse, LLMResponse
from trustwire.retry import retry_async

logger = logging.getLogger(__name__)


def chat_messages(prompt: str, system: str = "") -> list[dict]:
    if not system:
        return [{"role": "user", "content": prompt}]
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": prompt},
    ]


@register_provider("openai_compatible")
class OpenAICompatibleProvider(BaseLLMProvider):

    @property
    def provider_name(self) -> str:
        return "openai_compatible"

    async def _post(self, path: str, payload: dict) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        endpoint = self.base_url.rstrip("/") + "/" + path
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(endpoint, json=payload, headers=headers)
            resp.raise_for_status()
            return resp.json()

    async def complete(
        self,
        prompt: str,
        system: str = "",
        model: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 2000,
    ) -> LLMResponse:
        model = model or self.default_model
        payload = {
            "model": model,
            "messages": chat_messages(prompt, system),
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if self.json_mode:
            payload["response_format"] = {"type": "json_object"}

        data = await retry_async(
            self._post, "chat/completions", payload, max_retries=self.max_retries,
        )
        usage = data.get("usage") or {}
        logger.debug("%s completion: %s tokens", model, usage.get("total_tokens", "?"))
        return LLMResponse(
            text=data["choices"][0]["message"]["content"],
            input_tokens=usage.get("prompt_tokens", 0),
            output_tokens=usage.get("completion_tokens", 0),
            model=model,
        )

    async def embed(self, text: str, model: str | None = None) -> EmbeddingResponse:
        model = model or self.default_model
        payload = {"model": model, "input": text, "encoding_format": "float"}
        data = await retry_async(
            self._post, "embeddings", payload, max_retries=self.max_retries,
        )
        return EmbeddingResponse(
            vector=data["data"][0]["embedding"],
            input_tokens=(data.get("usage") or {}).get("prompt_tokens", 0),
            model=model,
        )
