"""애플리케이션 설정 관리"""

from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

# .env 파일 로드
load_dotenv()

# 프로젝트 루트 디렉토리
ROOT_DIR = Path(__file__).parent.parent

ProviderName = Literal["openai", "gemini", "anthropic", "dummy"]


class Settings(BaseSettings):
    """애플리케이션 설정"""

    # 제공자 인증 정보
    openai_api_key: str | None = Field(default=None, description="OpenAI API 키")
    gemini_api_key: str | None = Field(default=None, description="Google Gemini API 키")
    anthropic_api_key: str | None = Field(default=None, description="Anthropic API 키")

    # 의도 분류기
    classifier_provider: ProviderName = Field(
        default="openai", description="의도 분류에 사용할 제공자"
    )
    classifier_model: str = Field(default="gpt-4o", description="분류기 모델명")

    # 기본(base) 생성 모델
    base_a_provider: ProviderName = Field(default="openai", description="기본 모델 A 제공자")
    base_a_model: str = Field(default="gpt-5", description="기본 모델 A 이름")
    base_b_provider: ProviderName = Field(default="gemini", description="기본 모델 B 제공자")
    base_b_model: str = Field(default="gemini-2.5-pro", description="기본 모델 B 이름")

    # 파이프라인별 합성 모델
    factual_synthesizer_provider: ProviderName = Field(
        default="openai", description="사실형 파이프라인 합성 제공자"
    )
    factual_synthesizer_model: str = Field(
        default="gpt-4o", description="사실형 파이프라인 합성 모델"
    )
    creative_synthesizer_provider: ProviderName = Field(
        default="gemini", description="창작형 파이프라인 합성 제공자"
    )
    creative_synthesizer_model: str = Field(
        default="gemini-2.5-pro", description="창작형 파이프라인 합성 모델"
    )

    # 전송 설정
    request_timeout: float = Field(default=120.0, description="호출당 타임아웃(초)")
    anthropic_max_tokens: int = Field(default=4096, description="Anthropic max_tokens 기본값")

    # 앱 설정
    use_dummy_llm: bool = Field(
        default=False, description="모든 제공자를 오프라인 더미 백엔드로 대체"
    )
    app_debug: bool = Field(default=False, description="디버그 모드")
    log_level: str = Field(default="INFO", description="로그 레벨")
    host: str = Field(default="127.0.0.1", description="HTTP 바인드 호스트")
    port: int = Field(default=3000, description="HTTP 바인드 포트")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# 전역 설정 인스턴스
settings = Settings()


_KEY_FIELDS = {
    "openai": ("openai_api_key", "OPENAI_API_KEY"),
    "gemini": ("gemini_api_key", "GEMINI_API_KEY"),
    "anthropic": ("anthropic_api_key", "ANTHROPIC_API_KEY"),
}


def used_providers(cfg: Settings | None = None) -> set[str]:
    """분류기와 파이프라인 테이블이 참조하는 제공자 이름"""
    cfg = cfg or settings
    return {
        cfg.classifier_provider,
        cfg.base_a_provider,
        cfg.base_b_provider,
        cfg.factual_synthesizer_provider,
        cfg.creative_synthesizer_provider,
    }


def validate_settings(cfg: Settings | None = None) -> dict[str, str]:
    """설정 유효성 검사 및 제공자별 경고 메시지 반환"""
    cfg = cfg or settings
    warnings = {}

    if cfg.use_dummy_llm:
        return warnings

    for provider in sorted(used_providers(cfg)):
        if provider not in _KEY_FIELDS:
            continue
        field_name, env_name = _KEY_FIELDS[provider]
        if not getattr(cfg, field_name):
            warnings[provider] = f"{provider} API 호출에 {env_name}가 필요합니다."

    return warnings
