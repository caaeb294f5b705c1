"""발생 순서대로 호출자에게 전달되는 스트림 이벤트"""

import json
from dataclasses import dataclass, field
from enum import Enum


class EventType(str, Enum):
    """스트림 이벤트 태그"""

    STATUS = "status"
    INITIAL_DATA = "initial-data"
    PROVIDER_A_CHUNK = "providerA-chunk"
    PROVIDER_B_CHUNK = "providerB-chunk"
    FALLBACK_LOG = "fallback-log"
    SYNTHESIS_CHUNK = "synthesis-chunk"
    DONE = "done"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (EventType.DONE, EventType.ERROR)


@dataclass(frozen=True)
class StreamEvent:
    """태그와 페이로드를 가진 이벤트 하나"""

    type: EventType
    data: dict = field(default_factory=dict)

    @classmethod
    def status(cls, message: str) -> "StreamEvent":
        return cls(EventType.STATUS, {"message": message})

    @classmethod
    def initial_data(cls, pipeline_name: str, classifier_reasoning: str) -> "StreamEvent":
        return cls(
            EventType.INITIAL_DATA,
            {"pipelineName": pipeline_name, "classifierReasoning": classifier_reasoning},
        )

    @classmethod
    def chunk(cls, event_type: EventType, text: str) -> "StreamEvent":
        return cls(event_type, {"text": text})

    @classmethod
    def fallback_log(cls, log: str) -> "StreamEvent":
        return cls(EventType.FALLBACK_LOG, {"log": log})

    @classmethod
    def done(cls, message: str = "Stream complete.", **extra) -> "StreamEvent":
        return cls(EventType.DONE, {"message": message, **extra})

    @classmethod
    def error(cls, message: str) -> "StreamEvent":
        return cls(EventType.ERROR, {"message": message})

    def to_sse(self) -> str:
        """SSE 프레임"""
        return f"event: {self.type.value}\ndata: {json.dumps(self.data, ensure_ascii=False)}\n\n"
