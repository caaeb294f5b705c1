"""오케스트레이션 레이어

의도 분류 -> 파이프라인 선택 -> 두 제공자 병렬 생성 -> 합성/정제 -> 점진적 전달.

구성 요소:
- ProviderAdapter: LLM 백엔드 하나에 대한 실패 포착 래퍼
- IntentClassifier: 분류기 호출 한 번으로 FACTUAL/CREATIVE 분류
- PipelineRegistry: 의도 -> PipelineConfig 조회
- Orchestrator: 스트리밍/배치 실행 상태 머신
"""

from .batch import DEFAULT_TEST_CASES, run_batch
from .cache import ResponseCache
from .events import EventType, StreamEvent
from .exceptions import (
    ClassificationError,
    CombinerError,
    InvalidRequestError,
    PipelineNotRegisteredError,
    ProviderNotConfiguredError,
    ResultSealedError,
)
from .intent_classifier import IntentClassifier, parse_classification
from .models import (
    FATAL_MESSAGE,
    FallbackDecision,
    Intent,
    IntentType,
    ModelRef,
    OrchestrationResult,
    PipelineConfig,
    PipelineState,
    ProviderResult,
)
from .orchestrator import Orchestrator
from .pipelines import PipelineRegistry, build_default_registry
from .provider_adapter import ProviderAdapter

__all__ = [
    "DEFAULT_TEST_CASES",
    "run_batch",
    "ResponseCache",
    "EventType",
    "StreamEvent",
    "ClassificationError",
    "CombinerError",
    "InvalidRequestError",
    "PipelineNotRegisteredError",
    "ProviderNotConfiguredError",
    "ResultSealedError",
    "IntentClassifier",
    "parse_classification",
    "FATAL_MESSAGE",
    "FallbackDecision",
    "Intent",
    "IntentType",
    "ModelRef",
    "OrchestrationResult",
    "PipelineConfig",
    "PipelineState",
    "ProviderResult",
    "Orchestrator",
    "PipelineRegistry",
    "build_default_registry",
    "ProviderAdapter",
]
