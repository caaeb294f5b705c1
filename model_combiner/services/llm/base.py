"""LLM 서비스 기본 인터페이스"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Iterator


class ProviderTag(str, Enum):
    """모델명과 함께 저장되는 백엔드 식별자"""

    OPENAI = "openai"
    GEMINI = "gemini"
    ANTHROPIC = "anthropic"
    DUMMY = "dummy"

    @property
    def label(self) -> str:
        """실패 마커에 표시되는 벤더명"""
        return {
            ProviderTag.OPENAI: "OpenAI",
            ProviderTag.GEMINI: "Google AI",
            ProviderTag.ANTHROPIC: "Anthropic",
            ProviderTag.DUMMY: "Dummy",
        }[self]


@dataclass
class Message:
    """채팅 메시지"""

    role: str  # "system" | "user" | "assistant"
    content: str


@dataclass
class LLMResponse:
    """LLM 응답 데이터 클래스"""

    content: str
    model: str | None = None
    usage: dict | None = None
    metadata: dict | None = None


class BaseLLMService(ABC):
    """LLM 서비스 기본 추상 클래스"""

    provider: ProviderTag

    @abstractmethod
    def generate(
        self, messages: list[Message], model: str | None = None, **kwargs
    ) -> LLMResponse:
        """메시지를 기반으로 응답 생성 (동기, 논-스트리밍)

        Args:
            messages: 대화 메시지 리스트 (오래된 순)
            model: 모델명 (None이면 서비스 기본값)
            **kwargs: 추가 파라미터 (temperature, max_tokens 등)

        Returns:
            LLMResponse 객체
        """

    def stream_generate(
        self, messages: list[Message], model: str | None = None, **kwargs
    ) -> Iterator[str]:
        """메시지를 기반으로 응답 생성 (스트리밍)

        Args:
            messages: 대화 메시지 리스트 (오래된 순)
            model: 모델명 (None이면 서비스 기본값)
            **kwargs: 추가 파라미터

        Yields:
            응답 텍스트 조각(델타)
        """
        # 기본 구현: 스트리밍 미지원 시 전체 응답을 한 번에 yield
        response = self.generate(messages, model=model, **kwargs)
        yield response.content
