from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Dict, List

from .llm_base import LLMAdapter, LLMResponse


@dataclass
class MockAdapter(LLMAdapter):
    """Offline adapter answering with a canned workflow wrapped in prose and a fence.

    ``scenario="malformed_once"`` answers the first call without any JSON so
    callers can exercise their retry path.
    """

    scenario: str = "default"
    calls: int = 0

    def complete(self, prompt: str) -> LLMResponse:
        self.calls += 1
        if self.scenario == "malformed_once" and self.calls == 1:
            return LLMResponse(raw_text="Sorry, I could not build that workflow right now.")
        payload = self._build_payload(self._user_request(prompt))
        raw_text = (
            "Here is your workflow:\n```json\n"
            + json.dumps(payload, indent=2)
            + "\n```\nImport it into n8n and activate it when ready."
        )
        return LLMResponse(raw_text=raw_text)

    def generate(self, prompt: str) -> str:
        return self.complete(prompt).raw_text

    def _user_request(self, prompt: str) -> str:
        _, marker, request = prompt.rpartition("INPUT:")
        return (request if marker else prompt).lower()

    def _build_payload(self, request: str) -> Dict:
        wants_schedule = any(word in request for word in ("every", "daily", "schedule", "cron"))
        wants_email = any(word in request for word in ("email", "mail"))

        nodes: List[Dict] = []
        if wants_schedule:
            nodes.append(
                {
                    "name": "Schedule Trigger",
                    "type": "n8n-nodes-base.scheduleTrigger",
                    "typeVersion": 1,
                    "position": [250, 300],
                    "parameters": {"rule": {"interval": [{"field": "days"}]}},
                }
            )
        else:
            nodes.append(
                {
                    "name": "Manual Trigger",
                    "type": "n8n-nodes-base.manualTrigger",
                    "typeVersion": 1,
                    "position": [250, 300],
                    "parameters": {},
                }
            )
        if wants_email:
            nodes.append(
                {
                    "name": "Send Email",
                    "type": "n8n-nodes-base.emailSend",
                    "typeVersion": 2,
                    "position": [500, 300],
                    "parameters": {"subject": "Automated message"},
                }
            )
        else:
            nodes.append(
                {
                    "name": "HTTP Request",
                    "type": "n8n-nodes-base.httpRequest",
                    "typeVersion": 4,
                    "position": [500, 300],
                    "parameters": {"url": "https://example.com", "method": "GET"},
                }
            )

        return {
            "name": "Scheduled Email" if wants_schedule and wants_email else "Generated Workflow",
            "nodes": nodes,
            "connections": {
                nodes[0]["name"]: {
                    "main": [[{"node": nodes[1]["name"], "type": "main", "index": 0}]]
                }
            },
            "settings": {"executionOrder": "v1"},
        }
