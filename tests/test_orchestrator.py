"""오케스트레이터 테스트"""

import threading

import pytest

from model_combiner.models.requests import CombineRequest, ConversationTurn
from model_combiner.services.orchestration import (
    FATAL_MESSAGE,
    EventType,
    InvalidRequestError,
    PipelineState,
    ProviderNotConfiguredError,
)
from model_combiner.services.orchestration.models import ModelRef
from model_combiner.services.llm.base import ProviderTag

from conftest import (
    BASE_A,
    BASE_B,
    CREATIVE_NAME,
    CREATIVE_SYNTH,
    FACTUAL_NAME,
    FACTUAL_SYNTH,
    is_synthesis_prompt,
)

A_TEXT = "TCP uses slow start and congestion avoidance to find available bandwidth."
B_TEXT = "Congestion control adjusts the window when packets are lost."
SYNTH_TEXT = "Merged answer about congestion windows."


def gemini_replies(b_text=B_TEXT, synth_text=SYNTH_TEXT):
    """기본 모델 B와 창작형 합성 모델은 모델명이 같으므로 프롬프트 형태로 구분"""
    return {
        BASE_B.name: lambda messages: synth_text if is_synthesis_prompt(messages) else b_text,
    }


def rendezvous_replies(barrier: threading.Barrier, text: str):
    """두 레인이 동시에 실행 중일 때만 통과하는 응답 (순차 실행이면 BrokenBarrierError)"""

    def reply(messages):
        barrier.wait()
        return text

    return reply


def events_of(events, event_type):
    return [e for e in events if e.type == event_type]


def text_of(events, event_type):
    return "".join(e.data["text"] for e in events_of(events, event_type))


class TestValidation:
    """요청 검증 테스트"""

    def test_blank_prompt_rejected_before_any_call(self, build_orchestrator):
        """공백 프롬프트는 제공자 호출 전에 거부"""
        orchestrator = build_orchestrator()

        with pytest.raises(InvalidRequestError):
            orchestrator.stream(CombineRequest(prompt="   "))

        for service in orchestrator.services.values():
            service.generate.assert_not_called()
            service.stream_generate.assert_not_called()

    def test_missing_prompt_rejected_in_batch_mode(self, build_orchestrator):
        """배치 모드에서도 프롬프트 누락 거부"""
        with pytest.raises(InvalidRequestError):
            build_orchestrator().run(CombineRequest())


class TestStreamHappyPath:
    """두 기본 제공자가 모두 성공하는 경우"""

    def test_creative_scenario(self, build_orchestrator):
        """창작형 요청은 창작형 합성 모델로 합성"""
        orchestrator = build_orchestrator(
            classifier="Reasoning: The user asks for a poem.\nCREATIVE",
            openai={BASE_A.name: "Waves roll in."},
            gemini=gemini_replies(b_text="Blue water sings.", synth_text="The sea, merged."),
        )

        events = list(orchestrator.stream(CombineRequest(prompt="Write a poem about the sea")))
        types = [e.type for e in events]

        assert types[0] == EventType.STATUS
        assert types[-1] == EventType.DONE
        assert types.count(EventType.DONE) == 1
        assert EventType.ERROR not in types

        initial = events_of(events, EventType.INITIAL_DATA)[0]
        assert initial.data["pipelineName"] == CREATIVE_NAME
        assert initial.data["classifierReasoning"] == "The user asks for a poem."

        assert events_of(events, EventType.FALLBACK_LOG)[0].data["log"] == ""
        assert text_of(events, EventType.SYNTHESIS_CHUNK) == "The sea, merged."

        gemini = orchestrator.services[ProviderTag.GEMINI]
        synth_calls = [
            c for c in gemini.stream_generate.call_args_list if is_synthesis_prompt(c.args[0])
        ]
        assert len(synth_calls) == 1
        assert synth_calls[0].kwargs["model"] == CREATIVE_SYNTH.name
        assert "Waves roll in." in synth_calls[0].args[0][-1].content
        assert "Blue water sings." in synth_calls[0].args[0][-1].content

    def test_factual_uses_factual_synthesizer(self, build_orchestrator, simple_request):
        """사실형 요청은 사실형 합성 모델 사용"""
        orchestrator = build_orchestrator(
            classifier="Technical question.\nFACTUAL",
            openai={BASE_A.name: A_TEXT, FACTUAL_SYNTH.name: SYNTH_TEXT},
            gemini=gemini_replies(),
        )

        events = list(orchestrator.stream(simple_request))

        assert events_of(events, EventType.INITIAL_DATA)[0].data["pipelineName"] == FACTUAL_NAME
        assert text_of(events, EventType.SYNTHESIS_CHUNK) == SYNTH_TEXT
        models = [c.kwargs["model"] for c in orchestrator.services[ProviderTag.OPENAI].stream_generate.call_args_list]
        assert FACTUAL_SYNTH.name in models

    def test_provider_chunks_concatenate_to_full_text(self, build_orchestrator, simple_request):
        """제공자 청크를 이으면 전체 텍스트"""
        orchestrator = build_orchestrator(
            openai={BASE_A.name: A_TEXT, FACTUAL_SYNTH.name: SYNTH_TEXT},
            gemini=gemini_replies(),
        )

        events = list(orchestrator.stream(simple_request))

        assert text_of(events, EventType.PROVIDER_A_CHUNK) == A_TEXT
        assert text_of(events, EventType.PROVIDER_B_CHUNK) == B_TEXT

    def test_event_order(self, build_orchestrator, simple_request):
        """합성은 두 기본 레인이 모두 끝난 뒤 시작"""
        orchestrator = build_orchestrator(
            openai={BASE_A.name: A_TEXT, FACTUAL_SYNTH.name: SYNTH_TEXT},
            gemini=gemini_replies(),
        )

        types = [e.type for e in orchestrator.stream(simple_request)]

        initial = types.index(EventType.INITIAL_DATA)
        last_base = max(
            i for i, t in enumerate(types)
            if t in (EventType.PROVIDER_A_CHUNK, EventType.PROVIDER_B_CHUNK)
        )
        fallback = types.index(EventType.FALLBACK_LOG)
        first_synth = types.index(EventType.SYNTHESIS_CHUNK)

        assert initial < last_base < fallback < first_synth < types.index(EventType.DONE)

    def test_base_lanes_run_concurrently(self, build_orchestrator, simple_request):
        """A와 B 레인이 동시에 실행됨 (서로를 기다려도 교착되지 않음)"""
        barrier = threading.Barrier(2, timeout=5)
        orchestrator = build_orchestrator(
            openai={BASE_A.name: rendezvous_replies(barrier, A_TEXT), FACTUAL_SYNTH.name: SYNTH_TEXT},
            gemini={BASE_B.name: rendezvous_replies(barrier, B_TEXT)},
        )

        events = list(orchestrator.stream(simple_request))

        assert text_of(events, EventType.PROVIDER_A_CHUNK) == A_TEXT
        assert text_of(events, EventType.PROVIDER_B_CHUNK) == B_TEXT
        assert events_of(events, EventType.FALLBACK_LOG)[0].data["log"] == ""
        assert not barrier.broken

    def test_history_prefix_reaches_providers(self, build_orchestrator):
        """이전 대화가 API 턴과 분류 프롬프트에 전달됨"""
        orchestrator = build_orchestrator(
            openai={BASE_A.name: A_TEXT, FACTUAL_SYNTH.name: SYNTH_TEXT},
            gemini=gemini_replies(),
        )
        request = CombineRequest(
            prompt="And in QUIC?",
            chatHistory=[
                ConversationTurn(role="user", content="Explain TCP"),
                ConversationTurn(role="assistant", content="TCP is reliable."),
                ConversationTurn(role="user", content="And in QUIC?"),
            ],
        )

        list(orchestrator.stream(request))

        openai = orchestrator.services[ProviderTag.OPENAI]
        base_call = next(
            c for c in openai.stream_generate.call_args_list if c.kwargs["model"] == BASE_A.name
        )
        messages = base_call.args[0]
        assert [(m.role, m.content) for m in messages] == [
            ("user", "Explain TCP"),
            ("assistant", "TCP is reliable."),
            ("user", "And in QUIC?"),
        ]
        # 호출자 소유 이력은 변경되지 않음
        assert len(request.chat_history) == 3

        classifier_prompt = orchestrator.services[ProviderTag.ANTHROPIC].generate.call_args.args[0][-1].content
        assert "User: Explain TCP\nAssistant: TCP is reliable." in classifier_prompt


class TestStreamFallbacks:
    """기본 제공자 일부/전체 실패"""

    def test_base_a_fails_refines_b(self, build_orchestrator):
        """A 실패 시 B 응답을 정제"""
        orchestrator = build_orchestrator(
            openai={BASE_A.name: ConnectionError("transport down"), FACTUAL_SYNTH.name: "Refined B."},
            gemini=gemini_replies(),
        )

        events = list(orchestrator.stream(CombineRequest(prompt="Explain TCP congestion control")))

        log = events_of(events, EventType.FALLBACK_LOG)[0].data["log"]
        assert "Model A" in log and "failed" in log and "Refining Model B" in log
        assert text_of(events, EventType.SYNTHESIS_CHUNK) == "Refined B."
        assert "ERROR" in text_of(events, EventType.PROVIDER_A_CHUNK)
        assert events[-1].type == EventType.DONE

        synth_call = next(
            c for c in orchestrator.services[ProviderTag.OPENAI].stream_generate.call_args_list
            if c.kwargs["model"] == FACTUAL_SYNTH.name
        )
        synth_prompt = synth_call.args[0][-1].content
        assert synth_prompt.startswith("You are an expert editor")
        assert B_TEXT in synth_prompt

    def test_base_b_fails_mid_stream_refines_a(self, build_orchestrator, simple_request):
        """B가 스트리밍 도중 실패하면 A 응답을 정제"""
        orchestrator = build_orchestrator(
            openai={BASE_A.name: A_TEXT, FACTUAL_SYNTH.name: "Refined A."},
            gemini={BASE_B.name: ["partial ", RuntimeError("stream reset")]},
        )

        events = list(orchestrator.stream(simple_request))

        log = events_of(events, EventType.FALLBACK_LOG)[0].data["log"]
        assert log.startswith("Model B") and "Refining Model A" in log
        b_text = text_of(events, EventType.PROVIDER_B_CHUNK)
        assert b_text.startswith("partial ")
        assert "--- ERROR: Google AI API call failed. ---" in b_text

    def test_answer_mentioning_error_is_not_a_failure(self, build_orchestrator, simple_request):
        """응답에 ERROR 단어가 있어도 실패가 아님"""
        orchestrator = build_orchestrator(
            openai={BASE_A.name: "An ERROR budget is fine.", FACTUAL_SYNTH.name: SYNTH_TEXT},
            gemini=gemini_replies(),
        )

        events = list(orchestrator.stream(simple_request))

        assert events_of(events, EventType.FALLBACK_LOG)[0].data["log"] == ""

    def test_both_bases_fail(self, build_orchestrator, simple_request):
        """두 기본 제공자 모두 실패하면 합성 없이 치명적 종료"""
        orchestrator = build_orchestrator(
            openai={BASE_A.name: TimeoutError("a"), FACTUAL_SYNTH.name: SYNTH_TEXT},
            gemini={BASE_B.name: TimeoutError("b")},
        )

        events = list(orchestrator.stream(simple_request))

        assert events[-1].type == EventType.DONE
        assert events[-1].data["message"] == FATAL_MESSAGE
        assert events[-1].data["fatal"] is True
        assert events_of(events, EventType.SYNTHESIS_CHUNK) == []
        openai_models = [
            c.kwargs["model"]
            for c in orchestrator.services[ProviderTag.OPENAI].stream_generate.call_args_list
        ]
        assert FACTUAL_SYNTH.name not in openai_models

    def test_synthesizer_failure_surfaces_base_a(self, build_orchestrator, simple_request):
        """합성 실패 시 A 응답 표시"""
        orchestrator = build_orchestrator(
            openai={BASE_A.name: A_TEXT, FACTUAL_SYNTH.name: RuntimeError("synth down")},
            gemini=gemini_replies(),
        )

        events = list(orchestrator.stream(simple_request))

        logs = [e.data["log"] for e in events_of(events, EventType.FALLBACK_LOG)]
        assert logs[-1].endswith("Synthesis step failed. Displaying best available response.")
        synth_text = text_of(events, EventType.SYNTHESIS_CHUNK)
        assert "--- SYNTHESIS FAILED ---" in synth_text
        assert A_TEXT in synth_text
        assert "ERROR:" not in synth_text
        assert events[-1].type == EventType.DONE

    def test_synthesizer_failure_after_a_failed_surfaces_b(self, build_orchestrator, simple_request):
        """A와 합성이 모두 실패하면 B 응답 표시"""
        orchestrator = build_orchestrator(
            openai={BASE_A.name: RuntimeError("a"), FACTUAL_SYNTH.name: RuntimeError("synth")},
            gemini=gemini_replies(),
        )

        events = list(orchestrator.stream(simple_request))

        logs = [e.data["log"] for e in events_of(events, EventType.FALLBACK_LOG)]
        assert "Model A" in logs[-1] and "Synthesis step failed" in logs[-1]
        assert B_TEXT in text_of(events, EventType.SYNTHESIS_CHUNK)


class TestStreamErrors:
    """요청 전체가 실패하는 경우"""

    def test_classifier_failure_ends_with_error(self, build_orchestrator, simple_request):
        """분류기 실패는 error 이벤트로 종료"""
        orchestrator = build_orchestrator(classifier=RuntimeError("classifier down"))

        events = list(orchestrator.stream(simple_request))

        assert events[-1].type == EventType.ERROR
        assert "classification failed" in events[-1].data["message"]
        assert EventType.INITIAL_DATA not in [e.type for e in events]
        orchestrator.services[ProviderTag.OPENAI].stream_generate.assert_not_called()

    def test_missing_adapter_reports_error_once(self, build_orchestrator, simple_request):
        """어댑터 누락은 error 이벤트 한 번"""
        orchestrator = build_orchestrator(openai={BASE_A.name: A_TEXT}, gemini=gemini_replies())
        del orchestrator.adapters[ProviderTag.GEMINI]

        events = list(orchestrator.stream(simple_request))

        assert [e.type for e in events].count(EventType.ERROR) == 1
        assert events[-1].type == EventType.ERROR
        assert "unexpected error" in events[-1].data["message"]

    def test_adapter_for_unknown_provider(self, build_orchestrator):
        """등록되지 않은 제공자 조회"""
        with pytest.raises(ProviderNotConfiguredError):
            build_orchestrator().adapter_for(ModelRef(ProviderTag.DUMMY, "x"))


class TestRun:
    """논-스트리밍 집계 모드"""

    def test_synthesize_both(self, build_orchestrator, simple_request):
        """두 응답 합성"""
        orchestrator = build_orchestrator(
            openai={BASE_A.name: A_TEXT, FACTUAL_SYNTH.name: SYNTH_TEXT},
            gemini=gemini_replies(),
        )

        result = orchestrator.run(simple_request)

        assert result.final_response == SYNTH_TEXT
        assert result.pipeline_name == FACTUAL_NAME
        assert result.provider_a.text == A_TEXT
        assert result.provider_b.text == B_TEXT
        assert result.fallback_log == ""
        assert result.fatal is False

    def test_base_calls_run_concurrently(self, build_orchestrator, simple_request):
        """배치 모드에서도 A와 B 호출이 동시에 실행됨"""
        barrier = threading.Barrier(2, timeout=5)
        orchestrator = build_orchestrator(
            openai={BASE_A.name: rendezvous_replies(barrier, A_TEXT), FACTUAL_SYNTH.name: SYNTH_TEXT},
            gemini={BASE_B.name: rendezvous_replies(barrier, B_TEXT)},
        )

        result = orchestrator.run(simple_request)

        assert not result.provider_a.failed
        assert not result.provider_b.failed
        assert result.final_response == SYNTH_TEXT
        assert not barrier.broken

    def test_dual_failure_record(self, build_orchestrator, simple_request):
        """두 기본 제공자 실패 기록"""
        orchestrator = build_orchestrator(
            openai={BASE_A.name: RuntimeError("a"), FACTUAL_SYNTH.name: SYNTH_TEXT},
            gemini={BASE_B.name: RuntimeError("b")},
        )

        result = orchestrator.run(simple_request)

        assert result.fatal is True
        assert result.final_response == FATAL_MESSAGE
        assert result.synthesis is None
        assert result.provider_a.failed and result.provider_b.failed
        assert result.provider_a.text == ""
        orchestrator.services[ProviderTag.OPENAI].generate.assert_called_once()

    def test_synthesis_failure_returns_base(self, build_orchestrator, simple_request):
        """합성 실패 시 기본 응답 반환"""
        orchestrator = build_orchestrator(
            openai={BASE_A.name: A_TEXT, FACTUAL_SYNTH.name: RuntimeError("synth")},
            gemini=gemini_replies(),
        )

        result = orchestrator.run(simple_request)

        assert result.final_response == A_TEXT
        assert result.synthesis.failed
        assert "returning Model A base response" in result.fallback_log

    def test_record_to_dict_shape(self, build_orchestrator, simple_request):
        """집계 기록 직렬화 키"""
        orchestrator = build_orchestrator(
            openai={BASE_A.name: A_TEXT, FACTUAL_SYNTH.name: SYNTH_TEXT},
            gemini=gemini_replies(),
        )

        record = orchestrator.run(simple_request).to_dict()

        for key in ("finalResponse", "providerA", "providerB", "pipelineName", "fallbackLog", "classifierReasoning"):
            assert key in record


def test_pipeline_states_cover_happy_path():
    """파이프라인 상태 목록"""
    assert [s.value for s in PipelineState] == [
        "received", "classifying", "generating", "deciding", "synthesizing", "done", "failed",
    ]
