"""파이프라인 레지스트리

의도 -> 파이프라인 설정의 읽기 전용 매핑. 프로세스 시작 시 설정에서 한 번 만듭니다.
"""

from types import MappingProxyType
from typing import Iterator, Mapping

from model_combiner.services.llm.base import ProviderTag
from model_combiner.settings import Settings, settings as default_settings

from .exceptions import PipelineNotRegisteredError
from .models import IntentType, ModelRef, PipelineConfig


class PipelineRegistry(Mapping):
    """불변 의도 -> PipelineConfig 조회 테이블"""

    def __init__(self, pipelines: Mapping[IntentType, PipelineConfig]):
        for intent, config in pipelines.items():
            if not isinstance(intent, IntentType):
                raise TypeError(f"파이프라인 키는 IntentType이어야 합니다: {intent!r}")
            if not isinstance(config, PipelineConfig):
                raise TypeError(f"{intent.value} 파이프라인은 PipelineConfig여야 합니다")
        self._pipelines = MappingProxyType(dict(pipelines))

    def resolve(self, intent: IntentType) -> PipelineConfig:
        """`intent`에 해당하는 파이프라인 반환 (미등록 의도는 프로그래밍 오류)"""
        try:
            return self._pipelines[intent]
        except KeyError:
            raise PipelineNotRegisteredError(
                f"등록된 파이프라인이 없는 의도: {getattr(intent, 'value', intent)!r}"
            ) from None

    def __getitem__(self, intent: IntentType) -> PipelineConfig:
        return self.resolve(intent)

    def __iter__(self) -> Iterator[IntentType]:
        return iter(self._pipelines)

    def __len__(self) -> int:
        return len(self._pipelines)


def build_default_registry(cfg: Settings | None = None) -> PipelineRegistry:
    """설정으로 FACTUAL/CREATIVE 파이프라인 테이블 생성"""
    cfg = cfg or default_settings
    base_a = ModelRef(ProviderTag(cfg.base_a_provider), cfg.base_a_model)
    base_b = ModelRef(ProviderTag(cfg.base_b_provider), cfg.base_b_model)

    return PipelineRegistry({
        IntentType.FACTUAL: PipelineConfig(
            display_name="Factual Pipeline (SOTA Base -> Quick Synth)",
            base_a=base_a,
            base_b=base_b,
            synthesizer=ModelRef(
                ProviderTag(cfg.factual_synthesizer_provider), cfg.factual_synthesizer_model
            ),
        ),
        IntentType.CREATIVE: PipelineConfig(
            display_name="Creative Pipeline (SOTA Base -> SOTA Synth)",
            base_a=base_a,
            base_b=base_b,
            synthesizer=ModelRef(
                ProviderTag(cfg.creative_synthesizer_provider), cfg.creative_synthesizer_model
            ),
        ),
    })
