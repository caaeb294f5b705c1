"""
대화 이력 렌더링

두 함수 모두 호출자 소유의 이력을 읽기만 하고 변경하지 않습니다.
"""
from __future__ import annotations

from typing import Iterable, List

from model_combiner.models.requests import ConversationTurn, Role
from model_combiner.services.llm.base import Message

NO_HISTORY_PLACEHOLDER = "No previous conversation."


def format_chat_history(history: Iterable[ConversationTurn] | None) -> str:
    """이력을 역할 라벨이 붙은 대화록으로 렌더링 (턴당 한 줄)"""
    turns = list(history or [])
    if not turns:
        return NO_HISTORY_PLACEHOLDER
    return "\n".join(
        f"{'User' if turn.role == Role.USER else 'Assistant'}: {turn.content}"
        for turn in turns
    )


def to_messages(history: Iterable[ConversationTurn] | None) -> List[Message]:
    """대화 턴을 백엔드 중립 role/content 메시지로 변환"""
    return [Message(role=turn.role.value, content=turn.content) for turn in history or []]
