"""배치 평가

테스트 케이스 목록을 논-스트리밍 파이프라인으로 동시에 실행하고,
입력 순서대로 케이스당 집계 기록 하나를 반환합니다.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

from model_combiner.models.requests import CombineRequest

from .exceptions import ClassificationError
from .models import OrchestrationResult, ProviderResult
from .orchestrator import Orchestrator

logger = logging.getLogger(__name__)

UNCLASSIFIED_PIPELINE = "Unclassified"

# 기본 평가 세트 (프롬프트 + 선택적 제약)
DEFAULT_TEST_CASES: tuple[CombineRequest, ...] = (
    CombineRequest(prompt="asdf", constraints=""),
    CombineRequest(
        prompt="Explain the concept of 'technical debt'",
        constraints="without using any analogies",
    ),
    CombineRequest(
        prompt=(
            "Write a short, suspenseful story that starts with the line: "
            "'The old clock chimed thirteen times.'"
        ),
        constraints="The story must include a character named Elias.",
    ),
    CombineRequest(
        prompt=(
            "Generate a Python function that takes a URL and returns the top 5 "
            "most common words on the page."
        ),
        constraints=(
            "The function should not use any external libraries like requests or BeautifulSoup."
        ),
    ),
)


def _run_case(orchestrator: Orchestrator, request: CombineRequest) -> OrchestrationResult:
    try:
        return orchestrator.run(request)
    except ClassificationError as e:
        # 파이프라인을 고를 수 없으므로 배치를 중단하지 않고 치명적 결과로 기록
        logger.error(f"프롬프트 분류 실패 {request.prompt[:40]!r}: {e}")
        return OrchestrationResult(
            prompt=request.prompt,
            constraints=request.constraints,
            pipeline_name=UNCLASSIFIED_PIPELINE,
            classifier_reasoning="",
            final_response=f"FATAL: {e}",
            provider_a=ProviderResult(),
            provider_b=ProviderResult(),
            fallback_log=str(e),
            fatal=True,
        )


def run_batch(
    orchestrator: Orchestrator,
    requests: Sequence[CombineRequest] = DEFAULT_TEST_CASES,
    max_workers: int = 4,
) -> list[OrchestrationResult]:
    """모든 요청을 동시에 실행 (결과는 입력 순서 유지)

    잘못된 요청(빈 프롬프트)은 어떤 호출보다 먼저 InvalidRequestError를 발생시킵니다.
    """
    for request in requests:
        orchestrator.validate(request)

    if not requests:
        return []

    logger.info(f"테스트 케이스 {len(requests)}개 실행 (max_workers={max_workers})")
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="combiner-batch") as pool:
        results = list(pool.map(lambda request: _run_case(orchestrator, request), requests))

    if orchestrator.cache is not None:
        logger.info(
            f"응답 캐시: hit {orchestrator.cache.hits}, miss {orchestrator.cache.misses}"
        )
    return results
