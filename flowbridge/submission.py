from __future__ import annotations

from typing import Any, Dict

import requests

from flowbridge.config import BridgeConfig
from flowbridge.errors import SubmissionError


class N8nClient:
    """Creates workflows through the n8n public REST API."""

    def __init__(self, api_url: str, api_key: str | None, timeout: float = 30.0) -> None:
        if not api_key:
            raise SubmissionError("N8N_API_KEY is not set.")
        self.api_url = api_url
        self.api_key = api_key
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: BridgeConfig) -> "N8nClient":
        return cls(config.n8n_api_url, config.n8n_api_key, timeout=config.request_timeout)

    def _headers(self) -> Dict[str, str]:
        return {
            "X-N8N-API-KEY": self.api_key,
            "Content-Type": "application/json",
        }

    def create_workflow(self, document: Dict[str, Any]) -> Dict[str, Any]:
        print(f"[n8n] POST {self.api_url} nodes={len(document.get('nodes', []))}")
        try:
            response = requests.post(
                self.api_url,
                json=document,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise SubmissionError(f"Could not reach n8n at {self.api_url}: {exc}") from exc

        if not response.ok:
            raise SubmissionError(
                f"n8n rejected the workflow with HTTP {response.status_code}.",
                status_code=response.status_code,
                body=response.text,
            )
        try:
            return response.json()
        except ValueError:
            return {"raw": response.text}
