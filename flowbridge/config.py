from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import List

from dotenv import load_dotenv

DEFAULT_N8N_API_URL = "http://localhost:5678/api/v1/workflows"


@dataclass(frozen=True)
class BridgeConfig:
    provider: str = "openai"
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-flash-latest"
    n8n_api_url: str = DEFAULT_N8N_API_URL
    n8n_api_key: str | None = None
    max_output_tokens: int = 2048
    temperature: float = 0.2
    max_retries: int = 1
    request_timeout: float = 30.0

    @classmethod
    def from_env(cls) -> "BridgeConfig":
        return cls(
            provider=os.getenv("FLOWBRIDGE_PROVIDER", "openai").strip().lower(),
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
            gemini_model=os.getenv("GEMINI_MODEL", "gemini-flash-latest"),
            n8n_api_url=os.getenv("N8N_API_URL", DEFAULT_N8N_API_URL),
            n8n_api_key=os.getenv("N8N_API_KEY") or None,
            max_output_tokens=int(os.getenv("ORCH_MAX_OUTPUT_TOKENS", "2048")),
            temperature=float(os.getenv("ORCH_TEMPERATURE", "0.2")),
            max_retries=int(os.getenv("FLOWBRIDGE_MAX_RETRIES", "1")),
            request_timeout=float(os.getenv("N8N_REQUEST_TIMEOUT", "30")),
        )

    def with_overrides(self, **changes) -> "BridgeConfig":
        return replace(self, **{key: value for key, value in changes.items() if value is not None})

    def missing_keys(self, submit: bool = False, live: bool = True) -> List[str]:
        missing = []
        if live and self.provider == "gemini":
            if not self.gemini_api_key:
                missing.append("GEMINI_API_KEY")
        elif live and not self.openai_api_key:
            missing.append("OPENAI_API_KEY")
        if submit and not self.n8n_api_key:
            missing.append("N8N_API_KEY")
        return missing


def load_config(base_dir: Path) -> BridgeConfig:
    load_dotenv(base_dir / ".env")
    return BridgeConfig.from_env()


def ensure_keys(config: BridgeConfig, submit: bool = False, live: bool = True) -> None:
    missing = config.missing_keys(submit=submit, live=live)
    if missing:
        missing_keys = ", ".join(missing)
        raise RuntimeError(
            "Missing required API keys: "
            f"{missing_keys}. Create a .env file from .env.example and set the keys."
        )
