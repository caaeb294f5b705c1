"""테스트 픽스처 및 헬퍼"""

import re
from typing import Callable
from unittest.mock import Mock

import pytest

from model_combiner.models.requests import CombineRequest
from model_combiner.services.llm.base import LLMResponse, ProviderTag
from model_combiner.services.orchestration import (
    IntentClassifier,
    IntentType,
    ModelRef,
    Orchestrator,
    PipelineConfig,
    PipelineRegistry,
    ProviderAdapter,
)

BASE_A = ModelRef(ProviderTag.OPENAI, "gpt-5")
BASE_B = ModelRef(ProviderTag.GEMINI, "gemini-2.5-pro")
FACTUAL_SYNTH = ModelRef(ProviderTag.OPENAI, "gpt-4o")
CREATIVE_SYNTH = ModelRef(ProviderTag.GEMINI, "gemini-2.5-pro")
CLASSIFIER = ModelRef(ProviderTag.ANTHROPIC, "classifier-model")

FACTUAL_NAME = "Factual Pipeline (SOTA Base -> Quick Synth)"
CREATIVE_NAME = "Creative Pipeline (SOTA Base -> SOTA Synth)"


def split_fragments(text: str) -> list[str]:
    """이어 붙이면 원문이 되는 단어 조각으로 분리"""
    return re.findall(r"\S+\s*|\s+", text)


def is_synthesis_prompt(messages) -> bool:
    """합성/정제 프롬프트 여부 (마지막 메시지 기준)"""
    content = messages[-1].content
    return content.startswith("You are an expert synthesizer") or content.startswith(
        "You are an expert editor"
    )


def _resolve(reply, messages):
    if callable(reply) and not isinstance(reply, BaseException):
        reply = reply(messages)
    return reply


def scripted_service(provider: ProviderTag, replies: dict) -> Mock:
    """모델명별로 응답하는 Mock LLM 서비스

    응답은 문자열, 예외, 조각 리스트(리스트 안의 예외는 스트리밍 도중 발생),
    또는 메시지를 받는 callable 중 하나입니다.
    """
    service = Mock()
    service.provider = provider

    def generate(messages, model=None, **kwargs):
        reply = _resolve(replies[model], messages)
        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, list):
            if any(isinstance(part, BaseException) for part in reply):
                raise next(part for part in reply if isinstance(part, BaseException))
            reply = "".join(reply)
        return LLMResponse(content=reply, model=model)

    def stream_generate(messages, model=None, **kwargs):
        reply = _resolve(replies[model], messages)

        def gen():
            parts = reply
            if isinstance(parts, BaseException):
                raise parts
            if isinstance(parts, str):
                parts = split_fragments(parts)
            for part in parts:
                if isinstance(part, BaseException):
                    raise part
                yield part

        return gen()

    service.generate = Mock(side_effect=generate)
    service.stream_generate = Mock(side_effect=stream_generate)
    return service


@pytest.fixture
def registry():
    """기본 설정과 같은 FACTUAL/CREATIVE 파이프라인"""
    return PipelineRegistry({
        IntentType.FACTUAL: PipelineConfig(FACTUAL_NAME, BASE_A, BASE_B, FACTUAL_SYNTH),
        IntentType.CREATIVE: PipelineConfig(CREATIVE_NAME, BASE_A, BASE_B, CREATIVE_SYNTH),
    })


@pytest.fixture
def build_orchestrator(registry) -> Callable[..., Orchestrator]:
    """스크립트된 서비스 위에 오케스트레이터를 만드는 팩토리

    Keyword args:
        classifier: 분류기 응답 (문자열, 예외, callable)
        openai: OpenAI 모델명별 응답
        gemini: Gemini 모델명별 응답
        cache: 선택적 ResponseCache
    """

    def build(classifier="Reasoning: default\nFACTUAL", openai=None, gemini=None, cache=None):
        services = {
            ProviderTag.ANTHROPIC: scripted_service(
                ProviderTag.ANTHROPIC, {CLASSIFIER.name: classifier}
            ),
            ProviderTag.OPENAI: scripted_service(ProviderTag.OPENAI, openai or {}),
            ProviderTag.GEMINI: scripted_service(ProviderTag.GEMINI, gemini or {}),
        }
        adapters = {tag: ProviderAdapter(service) for tag, service in services.items()}
        orchestrator = Orchestrator(
            IntentClassifier(adapters[ProviderTag.ANTHROPIC], CLASSIFIER),
            registry,
            adapters,
            cache=cache,
        )
        orchestrator.services = services
        return orchestrator

    return build


@pytest.fixture
def simple_request():
    """사실형 기본 요청"""
    return CombineRequest(prompt="Explain TCP congestion control")
