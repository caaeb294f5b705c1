"""LLM 백엔드

각 백엔드는 벤더 SDK 하나를 `BaseLLMService` 뒤에 감쌉니다:
- OpenAILLM: chat completions (stream=True 포함)
- GeminiLLM: google-genai generate_content(_stream)
- AnthropicLLM: messages.create / messages.stream
- DummyLLM: 오프라인 결정적 백엔드
"""

from .base import BaseLLMService, LLMResponse, Message, ProviderTag
from .factory import build_llm_services, get_llm_service

__all__ = [
    "BaseLLMService",
    "LLMResponse",
    "Message",
    "ProviderTag",
    "build_llm_services",
    "get_llm_service",
]
