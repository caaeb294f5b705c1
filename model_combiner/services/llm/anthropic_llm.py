"""Anthropic API LLM 구현"""

from typing import Iterator

from anthropic import Anthropic

from model_combiner.settings import settings

from .base import BaseLLMService, LLMResponse, Message, ProviderTag


class AnthropicLLM(BaseLLMService):
    """Anthropic API를 사용한 LLM 서비스"""

    provider = ProviderTag.ANTHROPIC

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        client: Anthropic | None = None,
    ):
        """Anthropic 서비스 초기화

        Args:
            api_key: Anthropic API 키 (None이면 설정값 사용)
            model: 기본 모델명
            timeout: 요청당 타임아웃(초)
            client: 미리 만든 클라이언트 (테스트용)
        """
        self.api_key = api_key or settings.anthropic_api_key
        self.model = model or "claude-3-5-sonnet-20241022"
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self._client = client

    @property
    def client(self) -> Anthropic:
        """Anthropic 클라이언트 (lazy initialization)"""
        if self._client is None:
            if not self.api_key:
                raise ValueError("ANTHROPIC_API_KEY가 설정되지 않았습니다")
            self._client = Anthropic(api_key=self.api_key, timeout=self.timeout)
        return self._client

    @staticmethod
    def _split_system(messages: list[Message]) -> tuple[str | None, list[dict]]:
        # Anthropic은 system 메시지를 별도 파라미터로 받음
        system_message = None
        conversation_messages = []

        for msg in messages:
            if msg.role == "system":
                system_message = msg.content
            else:
                conversation_messages.append({"role": msg.role, "content": msg.content})

        return system_message, conversation_messages

    def _request_kwargs(self, messages: list[Message], model: str | None, kwargs: dict) -> dict:
        system_message, conversation_messages = self._split_system(messages)
        request = {
            "model": model or self.model,
            "max_tokens": kwargs.pop("max_tokens", settings.anthropic_max_tokens),
            "messages": conversation_messages,
            **kwargs,
        }
        if system_message:
            request["system"] = system_message
        return request

    def generate(
        self, messages: list[Message], model: str | None = None, **kwargs
    ) -> LLMResponse:
        """메시지를 기반으로 응답 생성"""
        response = self.client.messages.create(**self._request_kwargs(messages, model, kwargs))

        return LLMResponse(
            content="".join(
                block.text for block in response.content if getattr(block, "type", "") == "text"
            ),
            model=response.model,
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            },
            metadata={"provider": self.provider.value, "stop_reason": response.stop_reason},
        )

    def stream_generate(
        self, messages: list[Message], model: str | None = None, **kwargs
    ) -> Iterator[str]:
        """메시지를 기반으로 응답 생성 (스트리밍)"""
        with self.client.messages.stream(**self._request_kwargs(messages, model, kwargs)) as stream:
            for text in stream.text_stream:
                if text:
                    yield text
