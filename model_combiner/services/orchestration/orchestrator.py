"""오케스트레이터

분류 -> 파이프라인 선택 -> 두 기본 제공자 동시 생성 -> 폴백 결정
-> 합성(또는 정제) -> 완료.

두 진입점이 같은 결정 로직을 공유합니다:
- `stream(request)`: SSE 엔드포인트용 순서 보장 StreamEvent 이터레이터
- `run(request)`: 배치 평가용 동기 집계 기록
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from queue import Queue
from typing import Iterator, Mapping, Sequence

from model_combiner.models.requests import CombineRequest, ConversationTurn
from model_combiner.prompts import (
    build_refinement_prompt,
    build_synthesis_prompt,
    to_messages,
)
from model_combiner.services.llm.base import BaseLLMService, Message, ProviderTag
from model_combiner.settings import Settings, settings as default_settings

from .cache import ResponseCache
from .events import EventType, StreamEvent
from .exceptions import ClassificationError, InvalidRequestError, ProviderNotConfiguredError
from .intent_classifier import IntentClassifier
from .models import (
    FATAL_MESSAGE,
    FallbackDecision,
    ModelRef,
    OrchestrationResult,
    PipelineConfig,
    PipelineState,
    ProviderResult,
)
from .pipelines import PipelineRegistry, build_default_registry
from .provider_adapter import ProviderAdapter

logger = logging.getLogger(__name__)

# 기본 제공자 워커가 자기 레인이 끝났을 때 채널에 넣는 센티널
_LANE_DONE = object()

DUAL_FAILURE_LOG = "Both base models failed."
SYNTHESIS_FAILED_LOG = "Synthesis step failed. Displaying best available response."


class Orchestrator:
    """동적 다중 제공자 오케스트레이션 파이프라인"""

    def __init__(
        self,
        classifier: IntentClassifier,
        registry: PipelineRegistry,
        adapters: Mapping[ProviderTag, ProviderAdapter],
        cache: ResponseCache | None = None,
    ):
        """
        Args:
            classifier: 의도 분류기
            registry: 의도 -> 파이프라인 테이블
            adapters: 레지스트리가 쓰는 제공자 태그별 어댑터
            cache: 선택적 기본 응답 캐시 (배치 모드, 이력 없는 호출만)
        """
        self.classifier = classifier
        self.registry = registry
        self.adapters = dict(adapters)
        self.cache = cache

    @classmethod
    def from_settings(
        cls,
        cfg: Settings | None = None,
        llm_services: Mapping[ProviderTag, BaseLLMService] | None = None,
        cache: ResponseCache | None = None,
    ) -> "Orchestrator":
        """설정으로 분류기, 레지스트리, 어댑터 구성"""
        from model_combiner.services.llm.factory import build_llm_services

        cfg = cfg or default_settings
        services = llm_services if llm_services is not None else build_llm_services(cfg)
        adapters = {
            ProviderTag(tag): ProviderAdapter(service, ProviderTag(tag))
            for tag, service in services.items()
        }

        classifier_model = ModelRef(ProviderTag(cfg.classifier_provider), cfg.classifier_model)
        if classifier_model.provider not in adapters:
            raise ProviderNotConfiguredError(
                f"분류기 제공자 {classifier_model.provider.value!r}에 대한 LLM 서비스가 없습니다"
            )
        classifier = IntentClassifier(adapters[classifier_model.provider], classifier_model)

        return cls(classifier, build_default_registry(cfg), adapters, cache=cache)

    # ------------------------------------------------------------------
    # 공통 헬퍼
    # ------------------------------------------------------------------

    def adapter_for(self, model: ModelRef) -> ProviderAdapter:
        try:
            return self.adapters[model.provider]
        except KeyError:
            raise ProviderNotConfiguredError(
                f"{model.provider.value!r} 제공자 어댑터가 없습니다 (모델 {model.name})"
            ) from None

    @staticmethod
    def validate(request: CombineRequest) -> None:
        if not request.has_prompt:
            raise InvalidRequestError("Prompt is required.")

    @staticmethod
    def _transition(state: PipelineState, new_state: PipelineState) -> PipelineState:
        logger.info(f"파이프라인 상태 {state.value} -> {new_state.value}")
        return new_state

    @staticmethod
    def _plan_synthesis(
        decision: FallbackDecision,
        request: CombineRequest,
        config: PipelineConfig,
        result_a: ProviderResult,
        result_b: ProviderResult,
        history: Sequence[ConversationTurn],
    ) -> tuple[str, str]:
        """중단이 아닌 결정에 대한 (합성 프롬프트, 폴백 로그) 반환"""
        if decision is FallbackDecision.REFINE_B:
            return (
                build_refinement_prompt(request.prompt, result_b.text, request.constraints, history),
                f"Model A ({config.base_a.name}) failed. Refining Model B's response.",
            )
        if decision is FallbackDecision.REFINE_A:
            return (
                build_refinement_prompt(request.prompt, result_a.text, request.constraints, history),
                f"Model B ({config.base_b.name}) failed. Refining Model A's response.",
            )
        if decision is FallbackDecision.SYNTHESIZE:
            return (
                build_synthesis_prompt(
                    request.prompt, result_a.text, result_b.text, request.constraints, history
                ),
                "",
            )
        raise ValueError(f"합성 계획이 없는 결정: {decision.value}")

    @staticmethod
    def _best_base(result_a: ProviderResult, result_b: ProviderResult) -> tuple[str, ProviderResult]:
        """A가 실패하지 않았으면 A 우선"""
        if not result_a.failed:
            return "Model A", result_a
        return "Model B", result_b

    @staticmethod
    def _append_log(log: str, note: str) -> str:
        return f"{log} {note}" if log else note

    # ------------------------------------------------------------------
    # 스트리밍 모드
    # ------------------------------------------------------------------

    def stream(self, request: CombineRequest) -> Iterator[StreamEvent]:
        """먼저 검증한 뒤 순서 보장 이벤트 스트림 반환

        Raises:
            InvalidRequestError: 프롬프트 누락/공백 (제공자 호출 전)
        """
        self.validate(request)
        return self._stream(request)

    def _stream(self, request: CombineRequest) -> Iterator[StreamEvent]:
        state = PipelineState.RECEIVED
        try:
            history = request.history_for_prompting

            # 1. 의도 분류
            state = self._transition(state, PipelineState.CLASSIFYING)
            yield StreamEvent.status("Classifying prompt intent...")
            try:
                intent = self.classifier.classify(request.prompt, history)
            except ClassificationError as e:
                state = self._transition(state, PipelineState.FAILED)
                yield StreamEvent.error(str(e))
                return

            config = self.registry.resolve(intent.intent_type)
            logger.info(f"라우팅: {config.display_name}")
            yield StreamEvent.initial_data(config.display_name, intent.reasoning)

            # 2. 기본 응답 생성 (fork-join)
            state = self._transition(state, PipelineState.GENERATING)
            yield StreamEvent.status("Generating base responses...")
            api_history = to_messages(history)
            result_a = ProviderResult(model=config.base_a)
            result_b = ProviderResult(model=config.base_b)
            yield from self._generate_concurrently(
                request.prompt,
                api_history,
                [
                    (result_a, EventType.PROVIDER_A_CHUNK),
                    (result_b, EventType.PROVIDER_B_CHUNK),
                ],
            )

            # 3. 폴백 결정
            state = self._transition(state, PipelineState.DECIDING)
            decision = FallbackDecision.decide(result_a.failed, result_b.failed)
            logger.info(f"폴백 결정: {decision.value}")

            if decision is FallbackDecision.ABORT:
                yield StreamEvent.fallback_log(DUAL_FAILURE_LOG)
                state = self._transition(state, PipelineState.DONE)
                yield StreamEvent.done(FATAL_MESSAGE, fatal=True)
                return

            synthesis_prompt, fallback_log = self._plan_synthesis(
                decision, request, config, result_a, result_b, history
            )
            yield StreamEvent.fallback_log(fallback_log)

            # 4. 합성 / 정제
            state = self._transition(state, PipelineState.SYNTHESIZING)
            yield StreamEvent.status("Synthesizing final response...")
            synthesis = ProviderResult(model=config.synthesizer)
            adapter = self.adapter_for(config.synthesizer)
            for fragment in adapter.stream_into(
                synthesis, synthesis_prompt, api_history, emit_error_marker=False
            ):
                yield StreamEvent.chunk(EventType.SYNTHESIS_CHUNK, fragment)

            if synthesis.failed:
                fallback_log = self._append_log(fallback_log, SYNTHESIS_FAILED_LOG)
                yield StreamEvent.fallback_log(fallback_log)
                _, best = self._best_base(result_a, result_b)
                yield StreamEvent.chunk(
                    EventType.SYNTHESIS_CHUNK,
                    "\n\n--- SYNTHESIS FAILED ---\n"
                    f"Displaying best available base response:\n\n{best.text}",
                )

            state = self._transition(state, PipelineState.DONE)
            yield StreamEvent.done()

        except Exception as e:
            logger.exception(f"{state.value} 상태에서 예기치 않은 오류")
            self._transition(state, PipelineState.FAILED)
            yield StreamEvent.error(f"An unexpected error occurred: {e}")

    def _generate_concurrently(
        self,
        prompt: str,
        api_history: list[Message],
        lanes: list[tuple[ProviderResult, EventType]],
    ) -> Iterator[StreamEvent]:
        """레인마다 스레드를 띄우고 도착 순서대로 청크를 전달

        각 레인은 자기 ProviderResult만 씁니다. 모든 레인이 (성공이든 실패든)
        끝난 뒤에만 반환합니다.
        """
        channel: Queue = Queue()
        workers = []
        for result, event_type in lanes:
            adapter = self.adapter_for(result.model)
            workers.append(threading.Thread(
                target=self._pump,
                args=(adapter, result, prompt, api_history, event_type, channel),
                name=f"combiner-{event_type.value}",
                daemon=True,
            ))

        for worker in workers:
            worker.start()

        pending = len(workers)
        while pending:
            item = channel.get()
            if item is _LANE_DONE:
                pending -= 1
                continue
            yield item

        for worker in workers:
            worker.join()

    @staticmethod
    def _pump(
        adapter: ProviderAdapter,
        result: ProviderResult,
        prompt: str,
        api_history: list[Message],
        event_type: EventType,
        channel: Queue,
    ) -> None:
        try:
            for fragment in adapter.stream_into(result, prompt, api_history):
                channel.put(StreamEvent.chunk(event_type, fragment))
        except Exception as e:
            # 백엔드 오류는 stream_into가 처리하므로 여기 오는 것은 로컬 오류
            logger.exception(f"레인 {event_type.value} 비정상 종료")
            if not result.sealed:
                result.fail(f"internal error: {e}")
        finally:
            channel.put(_LANE_DONE)

    # ------------------------------------------------------------------
    # 논-스트리밍(배치) 모드
    # ------------------------------------------------------------------

    def _collect_base(
        self, prompt: str, model: ModelRef, api_history: list[Message]
    ) -> ProviderResult:
        adapter = self.adapter_for(model)
        if self.cache is None or api_history:
            return adapter.collect(prompt, model, api_history)
        return self.cache.get_or_compute(
            prompt, model, lambda: adapter.collect(prompt, model, api_history)
        )

    def run(self, request: CombineRequest) -> OrchestrationResult:
        """동기 호출로 파이프라인을 실행하고 집계 기록 반환

        Raises:
            InvalidRequestError: 프롬프트 누락/공백
            ClassificationError: 분류기 호출 실패
        """
        self.validate(request)
        history = request.history_for_prompting

        intent = self.classifier.classify(request.prompt, history)
        config = self.registry.resolve(intent.intent_type)
        logger.info(f"라우팅: {config.display_name}")
        api_history = to_messages(history)

        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="combiner-base") as pool:
            future_a = pool.submit(self._collect_base, request.prompt, config.base_a, api_history)
            future_b = pool.submit(self._collect_base, request.prompt, config.base_b, api_history)
            result_a, result_b = future_a.result(), future_b.result()

        decision = FallbackDecision.decide(result_a.failed, result_b.failed)
        logger.info(f"폴백 결정: {decision.value}")

        record = OrchestrationResult(
            prompt=request.prompt,
            constraints=request.constraints,
            pipeline_name=config.display_name,
            classifier_reasoning=intent.reasoning,
            final_response=FATAL_MESSAGE,
            provider_a=result_a,
            provider_b=result_b,
            classifier_duration=intent.duration,
        )

        if decision is FallbackDecision.ABORT:
            record.fallback_log = DUAL_FAILURE_LOG
            record.fatal = True
            return record

        synthesis_prompt, fallback_log = self._plan_synthesis(
            decision, request, config, result_a, result_b, history
        )
        synthesis = self.adapter_for(config.synthesizer).collect(
            synthesis_prompt, config.synthesizer, api_history
        )
        record.synthesis = synthesis

        if synthesis.failed:
            label, best = self._best_base(result_a, result_b)
            fallback_log = self._append_log(
                fallback_log, f"Synthesis step failed; returning {label} base response."
            )
            record.final_response = best.text
        else:
            record.final_response = synthesis.text

        record.fallback_log = fallback_log
        return record
