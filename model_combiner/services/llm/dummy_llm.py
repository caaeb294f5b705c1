"""더미 LLM 구현 (오프라인 실행 및 테스트용)"""

import re
import time
from typing import Iterator

from .base import BaseLLMService, LLMResponse, Message, ProviderTag

_LATEST_PROMPT = re.compile(r"^User's Latest Prompt: \"(.*)\"$", re.M)
_CREATIVE_WORDS = re.compile(r"\b(poem|story|poetry|brainstorm)\b", re.I)


class DummyLLMError(RuntimeError):
    """실패하도록 설정된 DummyLLM이 발생시키는 예외"""


class DummyLLM(BaseLLMService):
    """결정적인 오프라인 LLM 서비스

    응답은 모델명으로 `responses`에서 찾고, 없으면 마지막 사용자 메시지로
    만듭니다. 스트리밍은 공백 경계로 쪼개므로 조각을 이으면 동기 응답과 같습니다.
    """

    provider = ProviderTag.DUMMY

    def __init__(
        self,
        responses: dict[str, str] | None = None,
        fail: bool = False,
        delay: float = 0.0,
        model: str = "dummy-model",
    ):
        """
        Args:
            responses: 모델명별 고정 응답
            fail: True면 모든 호출에서 DummyLLMError 발생
            delay: 조각당 대기 시간(초, 지연 시뮬레이션)
            model: 기본 모델명
        """
        self.responses = dict(responses or {})
        self.fail = fail
        self.delay = delay
        self.model = model

    def _reply(self, messages: list[Message], model: str) -> str:
        if self.fail:
            raise DummyLLMError(f"dummy backend configured to fail (model={model})")

        if model in self.responses:
            return self.responses[model]

        user_message = ""
        for msg in reversed(messages):
            if msg.role == "user":
                user_message = msg.content
                break

        # 분류 프롬프트에는 reasoning/label 형식으로 응답
        if "Classification:" in user_message:
            match = _LATEST_PROMPT.search(user_message)
            latest = match.group(1) if match else ""
            label = "CREATIVE" if _CREATIVE_WORDS.search(latest) else "FACTUAL"
            return f"Reasoning: offline heuristic classification.\n{label}"

        return f"[dummy:{model}] {user_message[:200]}"

    def generate(
        self, messages: list[Message], model: str | None = None, **kwargs
    ) -> LLMResponse:
        """더미 응답 생성"""
        model = model or self.model
        content = self._reply(messages, model)
        return LLMResponse(
            content=content,
            model=model,
            usage={"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0},
            metadata={"provider": self.provider.value},
        )

    def stream_generate(
        self, messages: list[Message], model: str | None = None, **kwargs
    ) -> Iterator[str]:
        """더미 응답을 단어 단위로 스트리밍"""
        model = model or self.model
        content = self._reply(messages, model)
        for fragment in re.findall(r"\S+\s*|\s+", content):
            if self.delay:
                time.sleep(self.delay)
            yield fragment
