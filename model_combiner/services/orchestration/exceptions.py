"""오케스트레이션 예외"""


class CombinerError(Exception):
    """model-combiner 예외 기본 클래스"""


class InvalidRequestError(CombinerError, ValueError):
    """제공자 호출 전에 거부되는 요청 (예: 프롬프트 누락)"""


class ClassificationError(CombinerError):
    """의도 분류기 호출 실패 (파이프라인을 고를 수 없음)"""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class PipelineNotRegisteredError(CombinerError, LookupError):
    """의도에 등록된 파이프라인 설정이 없음"""


class ProviderNotConfiguredError(CombinerError, LookupError):
    """제공자 태그에 대한 어댑터가 없음"""


class ResultSealedError(CombinerError, RuntimeError):
    """봉인된 ProviderResult에 쓰기 시도"""
