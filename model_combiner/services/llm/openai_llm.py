"""OpenAI API LLM 구현"""

from typing import Iterator

from openai import OpenAI

from model_combiner.settings import settings

from .base import BaseLLMService, LLMResponse, Message, ProviderTag


class OpenAILLM(BaseLLMService):
    """OpenAI API를 사용한 LLM 서비스"""

    provider = ProviderTag.OPENAI

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        client: OpenAI | None = None,
    ):
        """OpenAI 서비스 초기화

        클라이언트는 첫 호출 시점에 생성합니다. 키 누락 등 생성 오류는
        호출 실패로 드러나 상위 어댑터에서 실패 결과로 처리됩니다.

        Args:
            api_key: OpenAI API 키 (None이면 설정값 사용)
            model: 기본 모델명 (None이면 settings.base_a_model)
            timeout: 요청당 타임아웃(초)
            client: 미리 만든 클라이언트 (테스트용)
        """
        self.api_key = api_key or settings.openai_api_key
        self.model = model or settings.base_a_model
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self._client = client

    @property
    def client(self) -> OpenAI:
        """OpenAI 클라이언트 (lazy initialization)"""
        if self._client is None:
            if not self.api_key:
                raise ValueError("OPENAI_API_KEY가 설정되지 않았습니다")
            self._client = OpenAI(api_key=self.api_key, timeout=self.timeout)
        return self._client

    @staticmethod
    def _to_openai_messages(messages: list[Message]) -> list[dict]:
        return [{"role": msg.role, "content": msg.content} for msg in messages]

    def generate(
        self, messages: list[Message], model: str | None = None, **kwargs
    ) -> LLMResponse:
        """메시지를 기반으로 응답 생성 (동기, 논-스트리밍)"""
        response = self.client.chat.completions.create(
            model=model or self.model, messages=self._to_openai_messages(messages), **kwargs
        )

        usage = None
        if response.usage is not None:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return LLMResponse(
            content=response.choices[0].message.content or "",
            model=response.model,
            usage=usage,
            metadata={"provider": self.provider.value},
        )

    def stream_generate(
        self, messages: list[Message], model: str | None = None, **kwargs
    ) -> Iterator[str]:
        """메시지를 기반으로 응답 생성 (스트리밍)

        논-스트리밍과 같은 chat completions 엔드포인트를 stream=True로 호출하므로
        델타를 이어 붙이면 동기 응답과 같은 텍스트가 됩니다.

        Yields:
            응답 텍스트 조각(델타)
        """
        stream = self.client.chat.completions.create(
            model=model or self.model,
            messages=self._to_openai_messages(messages),
            stream=True,
            **kwargs,
        )
        for chunk in stream:
            # 사용량 청크 등은 choices가 비어 있음
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta.content
            if delta:
                yield delta
