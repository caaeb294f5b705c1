"""요청 모델"""

from .requests import CombineRequest, ConversationTurn, Role

__all__ = ["CombineRequest", "ConversationTurn", "Role"]
