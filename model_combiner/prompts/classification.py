"""
의도 분류 프롬프트

분류기는 자유 형식의 근거를 쓴 뒤 마지막 줄에 FACTUAL 또는 CREATIVE
한 단어만 출력해야 합니다.
"""
from __future__ import annotations

from typing import Iterable

from model_combiner.models.requests import ConversationTurn

from .history import format_chat_history

CLASSIFICATION_TEMPLATE = """Analyze the user's LATEST prompt in the context of the conversation history. Classify the intent of the LATEST prompt as "FACTUAL" or "CREATIVE".

- "FACTUAL": Requests for explanations, code, technical info, summaries.
- "CREATIVE": Requests for stories, brainstorming, poetry, open-ended tasks.

First, provide a brief reasoning. Second, on a new line, provide the classification as a single word: FACTUAL or CREATIVE.

Conversation History:
{history}

User's Latest Prompt: "{prompt}"

Reasoning:
Classification:"""


def build_classification_prompt(
    prompt: str, history: Iterable[ConversationTurn] | None = None
) -> str:
    """최신 사용자 프롬프트에 대한 분류 프롬프트 생성"""
    return CLASSIFICATION_TEMPLATE.format(
        history=format_chat_history(history),
        prompt=prompt,
    )
