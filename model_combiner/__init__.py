"""model-combiner: 의도 기반 라우팅 + 이중 제공자 생성 + 합성"""

__version__ = "0.1.0"
