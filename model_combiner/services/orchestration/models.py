"""오케스트레이션 데이터 모델"""

from dataclasses import dataclass, field
from enum import Enum

from model_combiner.services.llm.base import ProviderTag

from .exceptions import ResultSealedError


class IntentType(Enum):
    """요청 의도"""

    FACTUAL = "FACTUAL"  # 설명, 코드, 기술 정보, 요약
    CREATIVE = "CREATIVE"  # 이야기, 브레인스토밍, 시, 열린 과제


@dataclass(frozen=True)
class Intent:
    """의도 분류 결과"""

    intent_type: IntentType
    reasoning: str = ""
    raw_response: str | None = None  # 분류기 원문 응답 (디버깅용)
    duration: float = 0.0  # 분류기 호출 소요 시간(초)


class PipelineState(Enum):
    """요청별 오케스트레이터 상태"""

    RECEIVED = "received"
    CLASSIFYING = "classifying"
    GENERATING = "generating"
    DECIDING = "deciding"
    SYNTHESIZING = "synthesizing"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class ModelRef:
    """모델명과 그 모델을 제공하는 제공자의 쌍"""

    provider: ProviderTag
    name: str

    def __post_init__(self):
        if not isinstance(self.provider, ProviderTag):
            object.__setattr__(self, "provider", ProviderTag(self.provider))
        if not self.name or not self.name.strip():
            raise ValueError("ModelRef.name은 비어 있지 않은 모델 식별자여야 합니다")

    def __str__(self) -> str:
        return f"{self.provider.value}:{self.name}"


@dataclass(frozen=True)
class PipelineConfig:
    """의도 하나에 대한 이름 붙은 모델 구성"""

    display_name: str
    base_a: ModelRef
    base_b: ModelRef
    synthesizer: ModelRef

    def __post_init__(self):
        if not self.display_name or not self.display_name.strip():
            raise ValueError("PipelineConfig.display_name은 비어 있으면 안 됩니다")
        for role in ("base_a", "base_b", "synthesizer"):
            if not isinstance(getattr(self, role), ModelRef):
                raise TypeError(f"PipelineConfig.{role}은 ModelRef여야 합니다")


@dataclass
class ProviderResult:
    """제공자 호출 하나의 누적 텍스트와 실패 플래그

    호출 중에는 조각을 덧붙이고, 끝나면 성공(`seal`) 또는 실패(`fail`)로
    봉인합니다. 봉인된 결과는 읽기 전용입니다.
    """

    model: ModelRef | None = None
    text: str = ""
    failed: bool = False
    error: str | None = None
    duration: float = 0.0
    sealed: bool = field(default=False, repr=False)

    def append(self, fragment: str) -> None:
        if self.sealed:
            raise ResultSealedError("봉인된 ProviderResult에는 덧붙일 수 없습니다")
        self.text += fragment

    def seal(self, duration: float | None = None) -> None:
        if duration is not None:
            self.duration = duration
        self.sealed = True

    def fail(self, error: str, duration: float | None = None) -> None:
        if self.sealed:
            raise ResultSealedError("봉인된 ProviderResult는 실패 처리할 수 없습니다")
        self.failed = True
        self.error = error
        self.seal(duration)

    def to_dict(self) -> dict:
        return {
            "model": str(self.model) if self.model else None,
            "text": self.text,
            "failed": self.failed,
            "error": self.error,
            "duration": round(self.duration, 3),
        }


class FallbackDecision(Enum):
    """두 기본 결과가 확정된 뒤 선택하는 분기"""

    ABORT = "dual-failure-abort"
    REFINE_B = "refine-B"
    REFINE_A = "refine-A"
    SYNTHESIZE = "synthesize-both"

    @classmethod
    def decide(cls, a_failed: bool, b_failed: bool) -> "FallbackDecision":
        if a_failed and b_failed:
            return cls.ABORT
        if a_failed:
            return cls.REFINE_B
        if b_failed:
            return cls.REFINE_A
        return cls.SYNTHESIZE


FATAL_MESSAGE = "FATAL: Both base models failed."


@dataclass
class OrchestrationResult:
    """논-스트리밍(배치) 실행 1건의 집계 기록"""

    prompt: str
    constraints: str
    pipeline_name: str
    classifier_reasoning: str
    final_response: str
    provider_a: ProviderResult
    provider_b: ProviderResult
    synthesis: ProviderResult | None = None
    fallback_log: str = ""
    fatal: bool = False
    classifier_duration: float = 0.0

    def to_dict(self) -> dict:
        return {
            "prompt": self.prompt,
            "constraints": self.constraints,
            "pipelineName": self.pipeline_name,
            "classifierReasoning": self.classifier_reasoning,
            "finalResponse": self.final_response,
            "providerA": self.provider_a.to_dict(),
            "providerB": self.provider_b.to_dict(),
            "synthesis": self.synthesis.to_dict() if self.synthesis else None,
            "fallbackLog": self.fallback_log,
            "fatal": self.fatal,
            "classifierDuration": round(self.classifier_duration, 3),
        }
