"""LLM 서비스 팩토리"""

from model_combiner.settings import Settings, settings as default_settings, used_providers

from .base import BaseLLMService, ProviderTag


def get_llm_service(provider: ProviderTag | str, cfg: Settings | None = None) -> BaseLLMService:
    """제공자 태그에 맞는 LLM 서비스 반환

    SDK 클라이언트는 첫 호출 때 만들어지므로 키가 없어도 여기서는 실패하지 않습니다.

    Args:
        provider: 제공자 태그 또는 문자열 값
        cfg: 설정 (None이면 전역 설정 사용)

    Returns:
        BaseLLMService 인스턴스
    """
    cfg = cfg or default_settings
    tag = ProviderTag(provider)

    if cfg.use_dummy_llm or tag == ProviderTag.DUMMY:
        from .dummy_llm import DummyLLM

        return DummyLLM()
    if tag == ProviderTag.OPENAI:
        from .openai_llm import OpenAILLM

        return OpenAILLM(api_key=cfg.openai_api_key, timeout=cfg.request_timeout)
    if tag == ProviderTag.GEMINI:
        from .gemini_llm import GeminiLLM

        return GeminiLLM(api_key=cfg.gemini_api_key, timeout=cfg.request_timeout)

    from .anthropic_llm import AnthropicLLM

    return AnthropicLLM(api_key=cfg.anthropic_api_key, timeout=cfg.request_timeout)


def build_llm_services(cfg: Settings | None = None) -> dict[ProviderTag, BaseLLMService]:
    """설정에서 참조하는 제공자마다 서비스 하나씩 생성"""
    cfg = cfg or default_settings
    return {
        ProviderTag(name): get_llm_service(name, cfg)
        for name in sorted(used_providers(cfg))
    }
