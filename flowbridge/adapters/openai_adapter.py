from __future__ import annotations

import time

from openai import OpenAI
from openai import APIConnectionError, APIError, APITimeoutError, RateLimitError, InternalServerError

from flowbridge.config import BridgeConfig
from flowbridge.errors import GenerationError

from .llm_base import LLMAdapter, LLMResponse

MAX_ATTEMPTS = 4


class OpenAIAdapter(LLMAdapter):
    def __init__(self, config: BridgeConfig) -> None:
        if not config.openai_api_key:
            raise GenerationError("OPENAI_API_KEY is not set.")
        self.model = config.openai_model
        self.max_tokens = config.max_output_tokens
        self.temperature = config.temperature
        self.client = OpenAI(api_key=config.openai_api_key)

    def complete(self, prompt: str) -> LLMResponse:
        attempt = 0
        backoff = 1.0
        while True:
            attempt += 1
            try:
                response = self.client.chat.completions.create(
                    model=self.model,
                    messages=[{"role": "user", "content": prompt}],
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                    response_format={"type": "json_object"},
                )
                content = response.choices[0].message.content
                if content is None:
                    raise GenerationError("OpenAI returned empty content.")
                usage = getattr(response, "usage", None)
                if usage:
                    usage_payload = {
                        "prompt_tokens": getattr(usage, "prompt_tokens", None),
                        "completion_tokens": getattr(usage, "completion_tokens", None),
                        "total_tokens": getattr(usage, "total_tokens", None),
                    }
                    print(
                        f"[openai] model={self.model} "
                        f"prompt_tokens={usage_payload['prompt_tokens']} "
                        f"completion_tokens={usage_payload['completion_tokens']} "
                        f"total_tokens={usage_payload['total_tokens']}"
                    )
                else:
                    usage_payload = None
                    print("[openai] usage not provided by SDK")
                return LLMResponse(raw_text=content, usage=usage_payload)
            except RateLimitError as exc:
                error = getattr(exc, "error", None)
                code = getattr(error, "code", None)
                if code == "insufficient_quota":
                    raise GenerationError(
                        "OpenAI API quota exceeded. Please enable billing in your OpenAI account."
                    ) from exc
                if attempt >= MAX_ATTEMPTS:
                    raise GenerationError(f"OpenAI rate limit persisted: {exc}") from exc
            except (APITimeoutError, APIConnectionError, InternalServerError) as exc:
                if attempt >= MAX_ATTEMPTS:
                    raise GenerationError(
                        f"OpenAI request failed after {attempt} attempts: {exc}"
                    ) from exc
            except APIError as exc:
                raise GenerationError(f"OpenAI request failed: {exc}") from exc
            print(f"[openai] retrying in {backoff:.1f}s (attempt {attempt}/{MAX_ATTEMPTS})")
            time.sleep(backoff)
            backoff *= 2

    def generate(self, prompt: str) -> str:
        return self.complete(prompt).raw_text
