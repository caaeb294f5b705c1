"""제공자 어댑터

LLM 백엔드 하나에 대한 공통 호출 인터페이스 (동기/스트리밍, 이전 대화 턴 포함 가능).
백엔드 예외는 이 경계에서 실패한 `ProviderResult`가 되며, 이후 단계에서는
텍스트를 검사해 실패를 판단하지 않습니다.
"""

import logging
import time
from typing import Iterator, Sequence

from model_combiner.services.llm.base import BaseLLMService, Message, ProviderTag

from .models import ModelRef, ProviderResult

logger = logging.getLogger(__name__)


class ProviderAdapter:
    """실패를 포착하는 `BaseLLMService` 래퍼"""

    def __init__(self, llm_service: BaseLLMService, provider: ProviderTag | None = None):
        """
        Args:
            llm_service: 백엔드 서비스
            provider: 이 어댑터가 담당하는 태그 (기본값은 서비스의 태그)
        """
        self.llm_service = llm_service
        self.provider = ProviderTag(provider or llm_service.provider)

    def error_marker(self) -> str:
        """호출자에게 보이는 스트림에 삽입되는 실패 문구"""
        return f"\n\n--- ERROR: {self.provider.label} API call failed. ---"

    @staticmethod
    def _messages(prompt: str, history: Sequence[Message] | None) -> list[Message]:
        return [*(history or []), Message(role="user", content=prompt)]

    def invoke(self, prompt: str, model: str, history: Sequence[Message] | None = None) -> str:
        """동기 호출 (백엔드 오류는 그대로 전파)"""
        response = self.llm_service.generate(self._messages(prompt, history), model=model)
        return response.content

    def invoke_streaming(
        self, prompt: str, model: str, history: Sequence[Message] | None = None
    ) -> Iterator[str]:
        """스트리밍 호출 (조각을 이으면 전체 응답, 백엔드 오류는 그대로 전파)"""
        yield from self.llm_service.stream_generate(self._messages(prompt, history), model=model)

    def collect(
        self, prompt: str, model: ModelRef, history: Sequence[Message] | None = None
    ) -> ProviderResult:
        """동기 호출 결과를 봉인된 ProviderResult로 수집"""
        result = ProviderResult(model=model)
        started = time.perf_counter()
        try:
            text = self.invoke(prompt, model.name, history)
        except Exception as e:
            logger.warning(f"{model} 동기 호출 실패: {e}")
            result.fail(f"{self.provider.label} API call failed: {e}", time.perf_counter() - started)
            return result

        result.append(text)
        result.seal(time.perf_counter() - started)
        return result

    def stream_into(
        self,
        result: ProviderResult,
        prompt: str,
        history: Sequence[Message] | None = None,
        emit_error_marker: bool = True,
    ) -> Iterator[str]:
        """스트리밍 호출을 `result`에 누적하며 조각이 도착할 때마다 yield

        실패 시 결과를 failed=True로 봉인하고(텍스트에는 받은 조각까지만 남음),
        요청된 경우 오류 마커를 텍스트에 덧붙이지 않고 마지막 조각으로 yield합니다.
        """
        model = result.model
        if model is None:
            raise ValueError("stream_into에는 model이 지정된 ProviderResult가 필요합니다")

        started = time.perf_counter()
        try:
            for fragment in self.invoke_streaming(prompt, model.name, history):
                if not fragment:
                    continue
                result.append(fragment)
                yield fragment
        except Exception as e:
            logger.warning(f"{model} 스트리밍 호출 실패: {e}")
            result.fail(f"{self.provider.label} API call failed: {e}", time.perf_counter() - started)
            if emit_error_marker:
                yield self.error_marker()
            return

        result.seal(time.perf_counter() - started)
