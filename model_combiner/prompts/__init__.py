"""
프롬프트 모듈

분류, 합성, 정제 프롬프트와 대화 이력 렌더링을 한곳에서 관리합니다.
"""

from .history import NO_HISTORY_PLACEHOLDER, format_chat_history, to_messages

from .classification import (
    CLASSIFICATION_TEMPLATE,
    build_classification_prompt,
)

from .synthesis import (
    REFINEMENT_TEMPLATE,
    SYNTHESIS_TEMPLATE,
    build_refinement_prompt,
    build_synthesis_prompt,
    format_constraint_instruction,
)

__all__ = [
    # history
    "NO_HISTORY_PLACEHOLDER",
    "format_chat_history",
    "to_messages",
    # classification
    "CLASSIFICATION_TEMPLATE",
    "build_classification_prompt",
    # synthesis / refinement
    "SYNTHESIS_TEMPLATE",
    "REFINEMENT_TEMPLATE",
    "build_synthesis_prompt",
    "build_refinement_prompt",
    "format_constraint_instruction",
]
