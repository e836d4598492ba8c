from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from flowbridge.config import ensure_keys, load_config
from flowbridge.errors import DocumentError
from flowbridge.pipeline_workflow import WorkflowPipeline
from flowbridge.utils.io import read_text, write_text
from flowbridge.utils.time import utc_timestamp


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Turn an automation request into an n8n workflow")
    parser.add_argument("--mode", choices=["mock", "live"], required=True)
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--prompt", help="Automation request text")
    source.add_argument("--prompt-file", help="File holding the automation request")
    parser.add_argument("--requirements", help="YAML or JSON mapping of requirement values")
    parser.add_argument("--strict", action="store_true", help="Reject extra top-level workflow keys")
    parser.add_argument("--submit", action="store_true", help="Create the workflow in n8n")
    parser.add_argument("--provider", choices=["openai", "gemini"])
    parser.add_argument("--max-output-tokens", type=int)
    parser.add_argument("--temperature", type=float)
    parser.add_argument("--runs-dir", help="Directory for run outputs (default: ./runs)")
    return parser


def load_requirements(path: Optional[str]) -> Dict[str, Any]:
    if not path:
        return {}
    try:
        loaded = yaml.safe_load(read_text(Path(path))) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Could not parse requirements file {path}: {exc}") from exc
    if not isinstance(loaded, dict):
        raise ValueError(f"Requirements file {path} must hold a mapping of field names to values.")
    return {str(key): value for key, value in loaded.items()}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    base_dir = Path.cwd()
    try:
        config = load_config(base_dir).with_overrides(
            provider=args.provider,
            max_output_tokens=args.max_output_tokens,
            temperature=args.temperature,
        )
        if args.mode == "live" or args.submit:
            ensure_keys(config, submit=args.submit, live=args.mode == "live")
        prompt = args.prompt if args.prompt is not None else read_text(Path(args.prompt_file))
        requirements = load_requirements(args.requirements)
    except (OSError, ValueError, RuntimeError) as exc:
        print(f"Cannot start workflow generation: {exc}")
        return 1

    runs_dir = Path(args.runs_dir) if args.runs_dir else base_dir / "runs"
    run_dir = runs_dir / utc_timestamp()
    write_text(run_dir / "inputs" / "prompt.txt", prompt)

    pipeline = WorkflowPipeline(args.mode, config)
    result = pipeline.run(
        prompt,
        run_dir,
        requirements=requirements,
        strict=args.strict,
        submit=args.submit,
    )
    if not result.ok:
        print(f"Workflow generation failed: {result.error}")
        if isinstance(result.error, DocumentError):
            print(f"Model output: {result.error.snippet()}")
        print(f"Raw outputs kept in {run_dir / 'raw'}")
        return 1

    print(f"Workflow written to {run_dir / 'artifacts' / 'workflow.json'}")
    if result.submission is not None:
        print(json.dumps(result.submission, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
