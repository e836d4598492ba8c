import json
from unittest.mock import MagicMock

import pytest

from flowbridge.adapters.llm_base import LLMResponse
from flowbridge.adapters.mock_adapter import MockAdapter
from flowbridge.config import BridgeConfig
from flowbridge.errors import ExtractionError, GenerationError, SubmissionError, ValidationError
from flowbridge.pipeline_workflow import PROMPTS_DIR, WorkflowPipeline


class StaticAdapter:
    def __init__(self, *answers):
        self.answers = list(answers)
        self.prompts = []

    def complete(self, prompt):
        self.prompts.append(prompt)
        return LLMResponse(raw_text=self.answers.pop(0))


class QuotaExceededAdapter:
    def complete(self, prompt):
        raise RuntimeError("OpenAI API quota exceeded.")


@pytest.fixture
def config():
    return BridgeConfig(max_retries=1)


def _read_json(path):
    return json.loads(path.read_text(encoding="utf-8"))


def test_mock_run_writes_artifacts(config, tmp_path):
    pipeline = WorkflowPipeline("mock", config)
    result = pipeline.run("Send me an email every morning", tmp_path)

    assert result.ok is True
    assert result.attempts == 1
    assert result.submission is None
    workflow = _read_json(tmp_path / "artifacts" / "workflow.json")
    assert [node["type"] for node in workflow["nodes"]] == [
        "n8n-nodes-base.scheduleTrigger",
        "n8n-nodes-base.emailSend",
    ]
    assert all(node["id"] for node in workflow["nodes"])
    fields = _read_json(tmp_path / "artifacts" / "requirement_fields.json")["fields"]
    assert {"SCHEDULE_CRON", "SMTP_HOST"} <= {field["name"] for field in fields}
    assert (tmp_path / "artifacts" / "workflow_summary.md").exists()
    assert (tmp_path / "raw" / "attempt1_raw.txt").exists()


def test_requirements_overlaid(config, tmp_path):
    pipeline = WorkflowPipeline("mock", config)
    result = pipeline.run(
        "Send me an email every morning",
        tmp_path,
        requirements={"SCHEDULE_CRON": "0 7 * * *", "TIMEZONE": "UTC", "SMTP_SECURITY": "tls"},
    )

    schedule, email = result.document["nodes"]
    assert schedule["parameters"]["cronExpression"] == "0 7 * * *"
    assert schedule["parameters"]["rule"] == {"interval": [{"field": "days"}]}
    assert email["parameters"]["secure"] is True
    assert _read_json(tmp_path / "artifacts" / "requirements.json")["TIMEZONE"] == "UTC"


def test_retry_after_malformed_answer(config, tmp_path):
    adapter = MockAdapter(scenario="malformed_once")
    pipeline = WorkflowPipeline("mock", config, adapter=adapter)
    result = pipeline.run("Call an API", tmp_path)

    assert result.ok is True
    assert result.attempts == 2
    assert adapter.calls == 2
    retry_prompt = (tmp_path / "raw" / "attempt2_prompt.txt").read_text(encoding="utf-8")
    assert "previous answer was rejected" in retry_prompt


def test_gives_up_after_retries(tmp_path):
    adapter = StaticAdapter("no json here", "still nothing")
    pipeline = WorkflowPipeline("live", BridgeConfig(max_retries=1), adapter=adapter)
    result = pipeline.run("Call an API", tmp_path)

    assert result.ok is False
    assert result.attempts == 2
    assert isinstance(result.error, ExtractionError)
    assert result.error.raw_text == "still nothing"
    assert not (tmp_path / "artifacts" / "workflow.json").exists()


def test_strict_mode_reports_validation_error(tmp_path):
    answer = json.dumps({"name": "W", "nodes": [], "connections": {}, "settings": {}, "active": True})
    adapter = StaticAdapter(answer)
    pipeline = WorkflowPipeline("live", BridgeConfig(max_retries=0), adapter=adapter)
    result = pipeline.run("Anything", tmp_path, strict=True)

    assert result.ok is False
    assert isinstance(result.error, ValidationError)
    assert result.error.extra_fields == ["active"]


def test_submit_uses_client(config, tmp_path):
    client = MagicMock()
    client.create_workflow.return_value = {"id": "wf-1"}
    pipeline = WorkflowPipeline("mock", config)
    result = pipeline.run("Call an API", tmp_path, submit=True, client=client)

    assert result.ok is True
    assert result.submission == {"id": "wf-1"}
    client.create_workflow.assert_called_once_with(result.document)
    assert _read_json(tmp_path / "artifacts" / "submission.json") == {"id": "wf-1"}


def test_submit_failure_is_reported(config, tmp_path):
    client = MagicMock()
    client.create_workflow.side_effect = SubmissionError("rejected", status_code=400)
    pipeline = WorkflowPipeline("mock", config)
    result = pipeline.run("Call an API", tmp_path, submit=True, client=client)

    assert result.ok is False
    assert result.document is not None
    assert result.error.status_code == 400


def test_adapter_failure_is_reported(tmp_path):
    pipeline = WorkflowPipeline("live", BridgeConfig(), adapter=QuotaExceededAdapter())
    result = pipeline.run("x", tmp_path)

    assert result.ok is False
    assert result.attempts == 1
    assert isinstance(result.error, GenerationError)
    assert "quota exceeded" in result.error.message
    assert not (tmp_path / "raw" / "attempt1_raw.txt").exists()


def test_missing_provider_key_is_reported(tmp_path):
    pipeline = WorkflowPipeline("live", BridgeConfig(provider="openai"))
    result = pipeline.run("x", tmp_path)

    assert result.ok is False
    assert result.attempts == 0
    assert isinstance(result.error, GenerationError)
    assert "OPENAI_API_KEY" in result.error.message


def test_submit_without_n8n_key_is_reported(config, tmp_path):
    pipeline = WorkflowPipeline("mock", config)
    result = pipeline.run("Call an API", tmp_path, submit=True)

    assert result.ok is False
    assert isinstance(result.error, SubmissionError)
    assert result.document is not None
    assert (tmp_path / "artifacts" / "workflow.json").exists()


def test_prompt_template_ships_with_the_package():
    assert (PROMPTS_DIR / "workflow_generation.md").is_file()
    assert PROMPTS_DIR.parent.name == "flowbridge"
