from unittest.mock import MagicMock, patch

import httpx
import pytest
from openai import APIConnectionError

from flowbridge.adapters.gemini_adapter import GeminiAdapter
from flowbridge.adapters.mock_adapter import MockAdapter
from flowbridge.adapters.openai_adapter import OpenAIAdapter
from flowbridge.config import BridgeConfig
from flowbridge.errors import GenerationError
from flowbridge.gates.parsers import extract


class TestMockAdapter:
    def test_default_answer_extracts(self):
        document = extract(MockAdapter().generate("INPUT:\nfetch a web page"))

        assert [node["type"] for node in document["nodes"]] == [
            "n8n-nodes-base.manualTrigger",
            "n8n-nodes-base.httpRequest",
        ]
        assert document["connections"]["Manual Trigger"]["main"][0][0]["node"] == "HTTP Request"

    def test_keywords_only_read_from_request(self):
        adapter = MockAdapter()
        document = extract(adapter.generate("schedule email rules\n\nINPUT:\nping a url"))

        assert document["nodes"][0]["type"] == "n8n-nodes-base.manualTrigger"

    def test_malformed_once(self):
        adapter = MockAdapter(scenario="malformed_once")

        assert "{" not in adapter.generate("INPUT:\nanything")
        assert "```json" in adapter.generate("INPUT:\nanything")


class TestOpenAIAdapter:
    def test_requires_key(self):
        with pytest.raises(GenerationError):
            OpenAIAdapter(BridgeConfig())

    def test_complete_returns_text_and_usage(self):
        config = BridgeConfig(openai_api_key="k", openai_model="gpt-test", max_output_tokens=64)
        with patch("flowbridge.adapters.openai_adapter.OpenAI") as client_cls:
            response = MagicMock()
            response.choices[0].message.content = '{"name": "W"}'
            response.usage.prompt_tokens = 10
            response.usage.completion_tokens = 5
            response.usage.total_tokens = 15
            client_cls.return_value.chat.completions.create.return_value = response

            result = OpenAIAdapter(config).complete("prompt")

        assert result.raw_text == '{"name": "W"}'
        assert result.usage == {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15}
        kwargs = client_cls.return_value.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-test"
        assert kwargs["max_tokens"] == 64

    def test_persistent_connection_error_raises_generation_error(self):
        config = BridgeConfig(openai_api_key="k")
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        with patch("flowbridge.adapters.openai_adapter.OpenAI") as client_cls, patch(
            "flowbridge.adapters.openai_adapter.time.sleep"
        ) as sleep:
            create = client_cls.return_value.chat.completions.create
            create.side_effect = APIConnectionError(request=request)

            with pytest.raises(GenerationError):
                OpenAIAdapter(config).complete("prompt")

        assert create.call_count == 4
        assert sleep.call_count == 3

    def test_empty_content_raises_generation_error(self):
        config = BridgeConfig(openai_api_key="k")
        with patch("flowbridge.adapters.openai_adapter.OpenAI") as client_cls:
            response = MagicMock()
            response.choices[0].message.content = None
            client_cls.return_value.chat.completions.create.return_value = response

            with pytest.raises(GenerationError):
                OpenAIAdapter(config).complete("prompt")


class TestGeminiAdapter:
    def test_requires_key(self):
        with pytest.raises(GenerationError):
            GeminiAdapter(BridgeConfig())

    def test_retries_transient_errors(self):
        config = BridgeConfig(gemini_api_key="k", gemini_model="gemini-test")
        with patch("flowbridge.adapters.gemini_adapter.genai.Client") as client_cls, patch(
            "flowbridge.adapters.gemini_adapter.time.sleep"
        ) as sleep:
            generate = client_cls.return_value.models.generate_content
            generate.side_effect = [RuntimeError("503 UNAVAILABLE"), MagicMock(text="{}")]

            text = GeminiAdapter(config).generate("prompt")

        assert text == "{}"
        assert generate.call_count == 2
        assert sleep.call_count == 1
        assert generate.call_args.kwargs["model"] == "gemini-test"

    def test_switches_model_on_permanent_error(self):
        config = BridgeConfig(gemini_api_key="k", gemini_model="gemini-test")
        with patch("flowbridge.adapters.gemini_adapter.genai.Client") as client_cls:
            generate = client_cls.return_value.models.generate_content
            generate.side_effect = [ValueError("bad request"), MagicMock(text="{}")]

            assert GeminiAdapter(config).generate("prompt") == "{}"

        assert generate.call_args.kwargs["model"] == "gemini-pro"

    def test_all_models_failing_raises_generation_error(self):
        config = BridgeConfig(gemini_api_key="k")
        with patch("flowbridge.adapters.gemini_adapter.genai.Client") as client_cls:
            client_cls.return_value.models.generate_content.side_effect = ValueError("bad request")

            with pytest.raises(GenerationError) as info:
                GeminiAdapter(config).generate("prompt")

        assert "bad request" in info.value.message
