#!/usr/bin/env python
"""평가 프롬프트를 논-스트리밍 파이프라인으로 실행합니다.

사용법:
    python scripts/run_batch.py                     # 내장 테스트 케이스
    python scripts/run_batch.py cases.json -o out.json

`cases.json`은 {"prompt": ..., "constraints": ...} 객체의 리스트입니다.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from model_combiner.models.requests import CombineRequest
from model_combiner.runtime import setup_logging
from model_combiner.services.orchestration import (
    DEFAULT_TEST_CASES,
    Orchestrator,
    OrchestrationResult,
    ResponseCache,
    run_batch,
)
from model_combiner.settings import settings, validate_settings

logger = logging.getLogger("model_combiner.scripts.run_batch")


def load_cases(path: str | None) -> list[CombineRequest]:
    if not path:
        return list(DEFAULT_TEST_CASES)
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return [CombineRequest.model_validate(item) for item in data]


def summarize(result: OrchestrationResult) -> str:
    lines = [
        f'[Prompt: "{result.prompt[:20]}..."]',
        f"  - Classifier Reason: {result.classifier_reasoning}",
        f"  -> Routed to: {result.pipeline_name}",
    ]
    if result.fallback_log:
        lines.append(f"  - {result.fallback_log}")
    lines.append(f"  - Classifier ({settings.classifier_model}): {result.classifier_duration:.2f}s")
    for label, step in (("Base A", result.provider_a), ("Base B", result.provider_b), ("Synthesis", result.synthesis)):
        if step is None or step.model is None:
            continue
        status = "FAILED" if step.failed else "ok"
        lines.append(f"  - {label} ({step.model.name}): {step.duration:.2f}s [{status}]")
    return "\n".join(lines)


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("cases", nargs="?", help="테스트 케이스 JSON 파일")
    parser.add_argument("-o", "--output", help="집계 기록을 JSON으로 저장")
    parser.add_argument("-j", "--workers", type=int, default=4, help="동시 실행 케이스 수")
    args = parser.parse_args()

    setup_logging()
    for key, message in validate_settings().items():
        logger.warning(f"[{key}] {message}")

    cases = load_cases(args.cases)
    orchestrator = Orchestrator.from_settings(settings, cache=ResponseCache())
    results = run_batch(orchestrator, cases, max_workers=args.workers)

    print("\n--- Performance Summary ---")
    for result in results:
        print(summarize(result))

    if args.output:
        Path(args.output).write_text(
            json.dumps([r.to_dict() for r in results], ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        print(f"\n- Results saved to '{args.output}'")

    return 1 if any(r.fatal for r in results) else 0


if __name__ == "__main__":
    sys.exit(main())
