"""의도 분류기 (IntentClassifier)

분류기 호출 한 번(논-스트리밍)으로 요청을 FACTUAL 또는 CREATIVE로 분류합니다.
모호하거나 잘못된 출력은 FACTUAL로 처리하고, 호출 자체가 실패하면
파이프라인을 고를 수 없으므로 ClassificationError를 발생시킵니다.
"""

import logging
import time
from typing import Sequence

from model_combiner.models.requests import ConversationTurn
from model_combiner.prompts import build_classification_prompt

from .exceptions import ClassificationError
from .models import Intent, IntentType, ModelRef
from .provider_adapter import ProviderAdapter

logger = logging.getLogger(__name__)


def parse_classification(response_text: str) -> tuple[IntentType, str]:
    """분류기 출력을 (의도, 근거)로 파싱

    비어 있지 않은 마지막 줄로 결정합니다. 대소문자 무시하고 "CREATIVE"를
    포함하면 CREATIVE, 아니면 FACTUAL. 앞선 줄들에서 "Reasoning:" 라벨을
    제거한 것이 근거가 됩니다.
    """
    lines = [line.strip() for line in (response_text or "").splitlines() if line.strip()]
    if not lines:
        return IntentType.FACTUAL, ""

    label_line = lines[-1].upper()
    intent_type = IntentType.CREATIVE if "CREATIVE" in label_line else IntentType.FACTUAL
    reasoning = " ".join(lines[:-1]).replace("Reasoning:", "").strip()
    return intent_type, reasoning


class IntentClassifier:
    """LLM 기반 의도 분류기"""

    def __init__(self, adapter: ProviderAdapter, model: ModelRef):
        """
        Args:
            adapter: 분류기 제공자의 어댑터
            model: 분류기 모델
        """
        self.adapter = adapter
        self.model = model

    def classify(
        self, prompt: str, history: Sequence[ConversationTurn] | None = None
    ) -> Intent:
        """최신 프롬프트의 의도 분류

        Args:
            prompt: 최신 사용자 프롬프트
            history: 이전 대화 (프롬프트 본문에만 렌더링)

        Returns:
            Intent 객체

        Raises:
            ClassificationError: 분류기 호출 실패
        """
        classification_prompt = build_classification_prompt(prompt, history)

        started = time.perf_counter()
        try:
            response_text = self.adapter.invoke(classification_prompt, self.model.name)
        except Exception as e:
            logger.error(f"분류기 {self.model} 호출 실패: {e}")
            raise ClassificationError(f"Intent classification failed: {e}", cause=e) from e
        duration = time.perf_counter() - started

        intent_type, reasoning = parse_classification(response_text)
        logger.info(f"의도 분류 완료: {intent_type.value} ({self.model})")
        logger.debug(f"분류 근거: {reasoning}")

        return Intent(
            intent_type=intent_type,
            reasoning=reasoning,
            raw_response=response_text,
            duration=duration,
        )
