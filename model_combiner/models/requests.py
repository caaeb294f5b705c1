"""요청 모델

combine 요청과 대화 이력의 Pydantic 모델.
이력은 호출자가 소유하며 매 요청마다 전체를 다시 보냅니다.
"""
from __future__ import annotations

from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Role(str, Enum):
    """대화 턴 작성자"""
    USER = "user"
    ASSISTANT = "assistant"


class ConversationTurn(BaseModel):
    """시간순 대화 턴 하나"""
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str = Field(default="", description="턴 텍스트")

    @field_validator("role", mode="before")
    @classmethod
    def _normalise_role(cls, value):
        # Gemini 형식 대화록은 assistant 턴을 "model"로 표기
        if isinstance(value, str):
            value = value.strip().lower()
            if value == "model":
                return Role.ASSISTANT
        return value


class CombineRequest(BaseModel):
    """단일 combine 요청"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    prompt: str = Field(default="", description="사용자 프롬프트 (필수, 비어 있으면 안 됨)")
    constraints: str = Field(default="", description="최종 답변에 대한 선택적 제약 조건")
    chat_history: List[ConversationTurn] = Field(
        default_factory=list, alias="chatHistory", description="전체 대화 이력 (오래된 순)"
    )

    @field_validator("prompt", "constraints", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value

    @field_validator("chat_history", mode="before")
    @classmethod
    def _none_to_list(cls, value):
        return [] if value is None else value

    @property
    def has_prompt(self) -> bool:
        return bool(self.prompt and self.prompt.strip())

    @property
    def history_for_prompting(self) -> List[ConversationTurn]:
        """방금 제출된 사용자 턴을 제외한 이력

        마지막 턴이 사용자 턴일 때만 제외합니다. assistant 턴으로 끝나는 이력에는
        아직 새 프롬프트가 들어 있지 않습니다.
        """
        history = list(self.chat_history)
        if history and history[-1].role == Role.USER:
            return history[:-1]
        return history
