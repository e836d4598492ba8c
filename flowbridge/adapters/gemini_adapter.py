from __future__ import annotations

import random
import time
from typing import List

from google import genai
from google.genai import types

from flowbridge.config import BridgeConfig
from flowbridge.errors import GenerationError

from .llm_base import LLMAdapter


class GeminiAdapter(LLMAdapter):
    def __init__(self, config: BridgeConfig, max_attempts: int = 5, base_delay: float = 1.0) -> None:
        if not config.gemini_api_key:
            raise GenerationError("GEMINI_API_KEY is not set.")

        self.client = genai.Client(api_key=config.gemini_api_key)
        self.model_candidates: List[str] = [
            config.gemini_model,
            "gemini-pro",
            "gemini-1.5-pro",
        ]
        self.generation_config = types.GenerateContentConfig(
            max_output_tokens=config.max_output_tokens,
            temperature=config.temperature,
            response_mime_type="application/json",
        )
        self.max_attempts = max_attempts
        self.base_delay = base_delay

    def _is_transient(self, err: Exception) -> bool:
        msg = str(err).lower()
        return any(s in msg for s in ["503", "unavailable", "429", "too many", "timeout", "temporarily"])

    def generate(self, prompt: str) -> str:
        last_err: Exception | None = None

        for model in self.model_candidates:
            for attempt in range(1, self.max_attempts + 1):
                try:
                    print(f"[gemini] model={model} attempt={attempt}/{self.max_attempts}")
                    response = self.client.models.generate_content(
                        model=model,
                        contents=prompt,
                        config=self.generation_config,
                    )
                    text = getattr(response, "text", None)
                    if not text:
                        raise GenerationError("Gemini returned empty content.")
                    return text

                except Exception as e:
                    last_err = e
                    if not self._is_transient(e):
                        break

                    delay = self.base_delay * (2 ** (attempt - 1)) + random.random() * 0.5
                    print(f"[gemini] transient error: {e} -> sleeping {delay:.2f}s")
                    time.sleep(delay)

            print(f"[gemini] switching model after failures: {model}")

        raise GenerationError(
            "Gemini generate_content failed for all candidate models. "
            f"Last error: {last_err}"
        ) from last_err
