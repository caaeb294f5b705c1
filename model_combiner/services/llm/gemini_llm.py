"""Google Gemini LLM 구현 (google-genai SDK)"""

from typing import Iterator

from google import genai
from google.genai import types

from model_combiner.settings import settings

from .base import BaseLLMService, LLMResponse, Message, ProviderTag


class GeminiLLM(BaseLLMService):
    """Gemini API를 사용한 LLM 서비스"""

    provider = ProviderTag.GEMINI

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        client: genai.Client | None = None,
    ):
        """Gemini 서비스 초기화

        Args:
            api_key: Gemini API 키 (None이면 설정값 사용)
            model: 기본 모델명 (None이면 settings.base_b_model)
            timeout: 요청당 타임아웃(초)
            client: 미리 만든 클라이언트 (테스트용)
        """
        self.api_key = api_key or settings.gemini_api_key
        self.model = model or settings.base_b_model
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self._client = client

    @property
    def client(self) -> genai.Client:
        """Gemini 클라이언트 (lazy initialization, 키 누락은 호출 실패로 처리)"""
        if self._client is None:
            if not self.api_key:
                raise ValueError("GEMINI_API_KEY가 설정되지 않았습니다")
            self._client = genai.Client(
                api_key=self.api_key,
                # HttpOptions.timeout 단위는 밀리초
                http_options=types.HttpOptions(timeout=int(self.timeout * 1000)),
            )
        return self._client

    @staticmethod
    def _to_contents(messages: list[Message]) -> tuple[str | None, list[dict]]:
        """메시지를 system instruction과 role/parts contents로 분리"""
        system_instruction = None
        contents = []

        for msg in messages:
            if msg.role == "system":
                system_instruction = msg.content
                continue
            if not msg.content:
                continue
            role = "model" if msg.role == "assistant" else "user"
            contents.append({"role": role, "parts": [{"text": msg.content}]})

        return system_instruction, contents

    def _build_config(self, system_instruction: str | None, kwargs: dict):
        config = {}
        if system_instruction:
            config["system_instruction"] = system_instruction
        if "temperature" in kwargs:
            config["temperature"] = kwargs["temperature"]
        if "max_tokens" in kwargs:
            config["max_output_tokens"] = kwargs["max_tokens"]
        return types.GenerateContentConfig(**config) if config else None

    def generate(
        self, messages: list[Message], model: str | None = None, **kwargs
    ) -> LLMResponse:
        """메시지를 기반으로 응답 생성 (동기, 논-스트리밍)"""
        system_instruction, contents = self._to_contents(messages)

        response = self.client.models.generate_content(
            model=model or self.model,
            contents=contents,
            config=self._build_config(system_instruction, kwargs),
        )

        usage = None
        if getattr(response, "usage_metadata", None) is not None:
            usage = {
                "prompt_tokens": response.usage_metadata.prompt_token_count,
                "completion_tokens": response.usage_metadata.candidates_token_count,
                "total_tokens": response.usage_metadata.total_token_count,
            }

        return LLMResponse(
            content=response.text or "",
            model=model or self.model,
            usage=usage,
            metadata={"provider": self.provider.value},
        )

    def stream_generate(
        self, messages: list[Message], model: str | None = None, **kwargs
    ) -> Iterator[str]:
        """메시지를 기반으로 응답 생성 (스트리밍)"""
        system_instruction, contents = self._to_contents(messages)

        for chunk in self.client.models.generate_content_stream(
            model=model or self.model,
            contents=contents,
            config=self._build_config(system_instruction, kwargs),
        ):
            if chunk.text:
                yield chunk.text
