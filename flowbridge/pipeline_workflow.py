from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from flowbridge.adapters.gemini_adapter import GeminiAdapter
from flowbridge.adapters.llm_base import LLMAdapter, LLMResponse
from flowbridge.adapters.mock_adapter import MockAdapter
from flowbridge.adapters.openai_adapter import OpenAIAdapter
from flowbridge.artifacts.writers import write_workflow_summary
from flowbridge.catalog import fields_payload, suggest_requirement_fields
from flowbridge.config import BridgeConfig
from flowbridge.errors import FlowBridgeError, GenerationError
from flowbridge.gates.parsers import ExtractionResult, extract_workflow
from flowbridge.overlay import apply_requirements
from flowbridge.submission import N8nClient
from flowbridge.utils.io import read_text, write_json, write_text
from flowbridge.workflow import dangling_connections

PROMPTS_DIR = Path(__file__).resolve().parent / "prompts"


@dataclass
class PipelineResult:
    ok: bool
    run_dir: Path
    document: Optional[Dict[str, Any]] = None
    submission: Optional[Dict[str, Any]] = None
    error: Optional[FlowBridgeError] = None
    attempts: int = 0


class WorkflowPipeline:
    def __init__(
        self,
        mode: str,
        config: BridgeConfig,
        adapter: LLMAdapter | None = None,
        prompts_dir: Path = PROMPTS_DIR,
    ) -> None:
        self.mode = mode
        self.config = config
        self.prompts_dir = prompts_dir
        self._adapter_override = adapter

    def run(
        self,
        prompt: str,
        run_dir: Path,
        requirements: Mapping[str, Any] | None = None,
        strict: bool = False,
        submit: bool = False,
        client: N8nClient | None = None,
    ) -> PipelineResult:
        raw_dir = run_dir / "raw"
        artifacts_dir = run_dir / "artifacts"
        raw_dir.mkdir(parents=True, exist_ok=True)
        artifacts_dir.mkdir(parents=True, exist_ok=True)

        try:
            adapter = self._adapter()
        except GenerationError as exc:
            print(f"[pipeline] model adapter unavailable: {exc.message}")
            return PipelineResult(ok=False, run_dir=run_dir, error=exc)

        result, failure, attempts = self._generate(adapter, prompt, raw_dir, strict)
        if failure is not None:
            print(f"[pipeline] model call failed on attempt {attempts}: {failure.message}")
            return PipelineResult(ok=False, run_dir=run_dir, error=failure, attempts=attempts)
        if not result.ok:
            print(f"[pipeline] giving up after {attempts} attempt(s): {result.error.message}")
            return PipelineResult(ok=False, run_dir=run_dir, error=result.error, attempts=attempts)

        document = result.document
        if requirements:
            write_json(
                artifacts_dir / "requirements.json",
                {
                    key: "***" if "password" in str(key).lower() else value
                    for key, value in requirements.items()
                },
            )
            apply_requirements(document, requirements)

        fields = suggest_requirement_fields(document)
        dangling = dangling_connections(document)
        for problem in dangling:
            print(f"[pipeline] warning: {problem}")

        write_json(artifacts_dir / "workflow.json", document)
        write_json(artifacts_dir / "requirement_fields.json", {"fields": fields_payload(fields)})
        write_workflow_summary(artifacts_dir / "workflow_summary.md", document, dangling, fields)

        submission = None
        if submit:
            try:
                n8n = client or N8nClient.from_config(self.config)
                submission = n8n.create_workflow(document)
            except FlowBridgeError as exc:
                print(f"[pipeline] submission failed: {exc}")
                return PipelineResult(
                    ok=False, run_dir=run_dir, document=document, error=exc, attempts=attempts
                )
            write_json(artifacts_dir / "submission.json", submission)

        return PipelineResult(
            ok=True,
            run_dir=run_dir,
            document=document,
            submission=submission,
            attempts=attempts,
        )

    def _generate(
        self, adapter: LLMAdapter, prompt: str, raw_dir: Path, strict: bool
    ) -> tuple[ExtractionResult | None, GenerationError | None, int]:
        template = read_text(self.prompts_dir / "workflow_generation.md")
        full_prompt = f"{template}\n\nINPUT:\n{prompt}\n"
        attempts = 0
        while True:
            attempts += 1
            write_text(raw_dir / f"attempt{attempts}_prompt.txt", full_prompt)
            try:
                response = self._call_model(adapter, full_prompt)
            except GenerationError as exc:
                return None, exc, attempts
            write_text(raw_dir / f"attempt{attempts}_raw.txt", response.raw_text)
            if response.usage:
                write_json(raw_dir / f"attempt{attempts}_usage.json", response.usage)

            result = extract_workflow(response.raw_text, strict=strict)
            if result.ok:
                print(f"[extract] attempt={attempts} nodes={len(result.document['nodes'])}")
                return result, None, attempts

            print(f"[extract] attempt={attempts} failed: {result.error.message}")
            if attempts > self.config.max_retries:
                return result, None, attempts
            full_prompt = (
                f"{template}\n\nYour previous answer was rejected: {result.error.message}\n"
                "Answer again with the complete workflow as ONE valid JSON object.\n\n"
                f"INPUT:\n{prompt}\n"
            )

    def _call_model(self, adapter: LLMAdapter, prompt: str) -> LLMResponse:
        try:
            return adapter.complete(prompt)
        except GenerationError:
            raise
        except Exception as exc:
            raise GenerationError(f"{type(exc).__name__}: {exc}") from exc

    def _adapter(self) -> LLMAdapter:
        if self._adapter_override is not None:
            return self._adapter_override
        if self.mode == "mock":
            return MockAdapter()
        if self.config.provider == "gemini":
            return GeminiAdapter(self.config)
        return OpenAIAdapter(self.config)
