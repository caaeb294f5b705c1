"""배치 실행 중 기본 제공자 응답 캐시"""

import threading
from typing import Callable

from .models import ModelRef, ProviderResult


class ResponseCache:
    """스레드 안전한 (prompt, model) -> ProviderResult 캐시

    실행 중에는 무효화하지 않습니다. 같은 키에 대한 동시 miss는 둘 다 계산할 수
    있으며, 먼저 저장된 결과가 남습니다.
    """

    def __init__(self):
        self._entries: dict[tuple[str, ModelRef], ProviderResult] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get_or_compute(
        self, prompt: str, model: ModelRef, compute: Callable[[], ProviderResult]
    ) -> ProviderResult:
        key = (prompt, model)
        with self._lock:
            cached = self._entries.get(key)
            if cached is not None:
                self.hits += 1
                return cached
            self.misses += 1

        result = compute()

        with self._lock:
            return self._entries.setdefault(key, result)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
