from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from crudflow.adapters.gemini_adapter import GeminiAdapter
from crudflow.adapters.llm_base import LLMAdapter
from crudflow.adapters.mock_adapter import MockAdapter
from crudflow.adapters.openai_adapter import OpenAIAdapter
from crudflow.artifacts.writers import write_run_summary
from crudflow.config import PipelineSettings
from crudflow.errors import PipelineError
from crudflow.executor import PromptRunner
from crudflow.kanban.yaml_kanban import YamlKanban
from crudflow.pipeline_crud import CrudPipeline
from crudflow.prompts import PromptTemplate
from crudflow.source.spring_tree import SpringSourceTree
from crudflow.transcript import Transcript
from crudflow.utils.time import run_id

logger = logging.getLogger("crudflow")

PROVIDER_KEYS = {"openai": "OPENAI_API_KEY", "gemini": "GEMINI_API_KEY"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate a CRUD feature from a user story")
    parser.add_argument("--mode", choices=["mock", "live"], required=True)
    parser.add_argument("--provider", choices=sorted(PROVIDER_KEYS), default="openai")
    parser.add_argument("--stories", required=True, help="YAML story board")
    parser.add_argument("--story-id", required=True)
    parser.add_argument("--source-root", required=True, help="Spring Boot project or source root")
    parser.add_argument("--runs-dir", default=None, help="Where run transcripts are written")
    parser.add_argument("--timeout", type=float, default=None, help="Seconds per prompt, 0 disables")
    parser.add_argument("--max-output-tokens", type=int, default=None)
    parser.add_argument("--temperature", type=float, default=None)
    parser.add_argument("--quiet", action="store_true", help="Do not echo the transcript")
    parser.add_argument("--log-level", default="INFO")
    return parser


def adapter_for(mode: str, provider: str) -> LLMAdapter:
    if mode == "mock":
        return MockAdapter()
    if provider == "gemini":
        return GeminiAdapter()
    return OpenAIAdapter()


def _ensure_env(base_dir: Path, provider: str) -> None:
    load_dotenv(base_dir / ".env")
    key = PROVIDER_KEYS[provider]
    if not os.getenv(key):
        raise RuntimeError(
            f"Missing required API key: {key}. Create a .env file and set the key."
        )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    base_dir = Path(__file__).resolve().parents[1]

    if args.max_output_tokens is not None:
        os.environ["ORCH_MAX_OUTPUT_TOKENS"] = str(args.max_output_tokens)
    if args.temperature is not None:
        os.environ["ORCH_TEMPERATURE"] = str(args.temperature)
    if args.timeout is not None:
        os.environ["CRUDFLOW_PROMPT_TIMEOUT"] = str(args.timeout)

    if args.mode == "live":
        _ensure_env(base_dir, args.provider)
    settings = PipelineSettings.from_env(base_dir / ".env")

    runs_dir = Path(args.runs_dir) if args.runs_dir else base_dir / "runs"
    run_dir = runs_dir / run_id()
    raw_dir = run_dir / "raw"
    raw_dir.mkdir(parents=True, exist_ok=True)

    kanban = YamlKanban(
        Path(args.stories),
        base_dir / "schemas" / "story_board.schema.json",
        min_length=settings.story_min_length,
    )
    source = SpringSourceTree(Path(args.source_root))
    transcript = Transcript(raw_dir=raw_dir, echo=not args.quiet)
    runner = PromptRunner(adapter_for(args.mode, args.provider), transcript, timeout=settings.prompt_timeout)
    pipeline = CrudPipeline(
        kanban,
        runner,
        source,
        PromptTemplate(base_dir / "configs" / "prompts"),
        settings,
    )

    try:
        report = pipeline.run(args.story_id)
    except PipelineError as exc:
        logger.error("Run failed: %s", exc)
        return 1
    except KeyboardInterrupt:
        runner.token.cancel()
        logger.error("Run interrupted")
        return 130

    write_run_summary(run_dir / "run_summary.md", report, source.root)
    logger.info("Run summary written to %s", run_dir / "run_summary.md")
    return 0


if __name__ == "__main__":
    sys.exit(main())
