"""
합성 및 정제 프롬프트

합성은 두 초안을 하나의 답변으로 병합하고, 정제는 기본 제공자 하나가 실패했을 때
남은 초안 하나를 개선합니다. 제약 조건은 비어 있지 않을 때만
CRITICAL INSTRUCTION 블록으로 삽입됩니다.
"""
from __future__ import annotations

from typing import Iterable

from model_combiner.models.requests import ConversationTurn

from .history import format_chat_history

SYNTHESIS_TEMPLATE = """You are an expert synthesizer. Given a conversation history and two new draft responses to the user's latest prompt, your task is to merge them into one superior, cohesive response.

Conversation History:
{history}

User's Latest Prompt: "{prompt}"

---
Draft Response A:
"{response_a}"

---
Draft Response B:
"{response_b}"
---
{constraint_instruction}
Synthesize the two drafts into a single, final response that directly and thoughtfully answers the user's latest prompt, maintaining the context of the conversation. Do not mention the synthesis process. Final Response:"""


REFINEMENT_TEMPLATE = """You are an expert editor. Review the following draft response in the context of the conversation history and the user's latest prompt. Your task is to refine and improve it.

Conversation History:
{history}

User's Latest Prompt: "{prompt}"

---
Draft Response to Refine:
"{response}"
---
{constraint_instruction}
Rewrite the draft to be a superior, final response that directly answers the user's latest prompt and adheres to any constraints. Do not mention the refinement process. Final Response:"""


def format_constraint_instruction(constraints: str | None) -> str:
    """CRITICAL INSTRUCTION 블록 반환 (제약이 없으면 빈 문자열)"""
    if not constraints or not constraints.strip():
        return ""
    return (
        "\nCRITICAL INSTRUCTION: You must adhere to the following user-defined "
        f"constraint when generating the final response:\n- {constraints.strip()}\n"
    )


def build_synthesis_prompt(
    prompt: str,
    response_a: str,
    response_b: str,
    constraints: str | None = None,
    history: Iterable[ConversationTurn] | None = None,
) -> str:
    """두 초안을 하나로 병합하는 프롬프트 생성"""
    return SYNTHESIS_TEMPLATE.format(
        history=format_chat_history(history),
        prompt=prompt,
        response_a=response_a,
        response_b=response_b,
        constraint_instruction=format_constraint_instruction(constraints),
    )


def build_refinement_prompt(
    prompt: str,
    response: str,
    constraints: str | None = None,
    history: Iterable[ConversationTurn] | None = None,
) -> str:
    """남은 초안 하나를 개선하는 프롬프트 생성"""
    return REFINEMENT_TEMPLATE.format(
        history=format_chat_history(history),
        prompt=prompt,
        response=response,
        constraint_instruction=format_constraint_instruction(constraints),
    )
