from __future__ import annotations

import json
import logging
from collections.abc import Iterator

from fastapi import APIRouter
from fastapi.responses import JSONResponse, StreamingResponse

from coach.backend.orchestrator import ChatReply, ChatStream, FinalPayload
from coach.backend.schemas import ChatAnswer, ChatRequest, FinalPayloadModel
from coach.backend.services import chat_service


logger = logging.getLogger("coach.chat")

router = APIRouter(prefix="/api", tags=["chat"])


def _encode_sse(event: str, data: dict) -> str:
	payload = json.dumps(data, ensure_ascii=False)
	return f"event: {event}\ndata: {payload}\n\n"


def _reply_response(reply: ChatReply) -> JSONResponse:
	body = ChatAnswer.model_validate(reply.as_dict())
	return JSONResponse(status_code=reply.status_code, content=body.model_dump())


def _stream_response(outcome: ChatStream) -> StreamingResponse:
	def generate() -> Iterator[str]:
		yield _encode_sse("meta", {"model": outcome.model, "provider_mode": outcome.provider_mode})
		try:
			for name, value in outcome.events:
				if name == "delta":
					yield _encode_sse("delta", {"text": value})
				elif isinstance(value, FinalPayload):
					final = FinalPayloadModel.model_validate(value.as_dict())
					yield _encode_sse("final", final.model_dump())
		except Exception:
			logger.exception("chat stream failed mid-flight")
			yield _encode_sse(
				"error",
				{"code": "completion_stream_error", "message": "Assistant stream failed."},
			)

	return StreamingResponse(
		generate(),
		media_type="text/event-stream",
		headers={
			"Cache-Control": "no-cache",
			"Connection": "keep-alive",
			"X-Accel-Buffering": "no",
		},
	)


@router.post("/chat")
def chat(payload: ChatRequest):
	request = chat_service.to_turn_request(
		(message.model_dump() for message in payload.messages),
		payload.location or None,
	)
	outcome = chat_service.run_turn(request)
	if isinstance(outcome, ChatReply):
		return _reply_response(outcome)
	return _stream_response(outcome)
