"""
HTTP 서버 - 스트리밍 combine 엔드포인트

- POST /combine: 요청을 검증한 뒤 오케스트레이터 이벤트를 SSE로 스트리밍
- GET /health: 헬스 체크
"""
from __future__ import annotations

import logging
from typing import Iterator

import uvicorn
from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, StreamingResponse
from starlette.routing import Route

from model_combiner.models.requests import CombineRequest
from model_combiner.runtime import setup_logging
from model_combiner.services.orchestration import (
    InvalidRequestError,
    Orchestrator,
    StreamEvent,
)
from model_combiner.settings import settings, validate_settings

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def _sse(events: Iterator[StreamEvent]) -> Iterator[str]:
    for event in events:
        if settings.app_debug:
            logger.debug(f"SSE {event.type.value}: {event.data}")
        if event.type.is_terminal:
            logger.info(f"스트림 종료: {event.type.value}")
        yield event.to_sse()


def create_app(orchestrator: Orchestrator | None = None) -> Starlette:
    """Starlette 앱 생성

    Args:
        orchestrator: 미리 만든 오케스트레이터 (None이면 첫 요청 때 설정으로 생성)
    """
    state = {"orchestrator": orchestrator}

    def get_orchestrator() -> Orchestrator:
        if state["orchestrator"] is None:
            state["orchestrator"] = Orchestrator.from_settings(settings)
        return state["orchestrator"]

    async def combine(request: Request):
        try:
            body = await request.json()
        except ValueError:
            # JSONDecodeError, UnicodeDecodeError 모두 ValueError
            return JSONResponse({"error": "Request body must be JSON."}, status_code=400)
        if not isinstance(body, dict):
            return JSONResponse({"error": "Request body must be a JSON object."}, status_code=400)

        try:
            combine_request = CombineRequest.model_validate(body)
        except ValidationError as e:
            return JSONResponse(
                {"error": "Invalid request.", "details": e.errors(include_url=False, include_context=False)},
                status_code=400,
            )

        try:
            orchestrator = get_orchestrator()
        except Exception as e:
            logger.exception("오케스트레이터 생성 실패")
            return JSONResponse(
                {"error": f"Server is not configured: {e}"}, status_code=500
            )

        try:
            events = orchestrator.stream(combine_request)
        except InvalidRequestError as e:
            return JSONResponse({"error": str(e)}, status_code=400)

        logger.info(
            f"combine 요청: prompt_len={len(combine_request.prompt)}, "
            f"history_turns={len(combine_request.chat_history)}"
        )
        return StreamingResponse(_sse(events), media_type="text/event-stream", headers=SSE_HEADERS)

    async def health(request: Request):
        return JSONResponse({"status": "ok"})

    return Starlette(
        debug=settings.app_debug,
        routes=[
            Route("/combine", combine, methods=["POST"]),
            Route("/health", health, methods=["GET"]),
        ],
    )


def main() -> None:
    setup_logging()
    for key, message in validate_settings().items():
        logger.warning(f"[{key}] {message}")

    app = create_app()
    logger.info(f"서버 실행: http://{settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
