from __future__ import annotations

import logging
import uuid
from typing import Iterable, Optional

from coach.backend.orchestrator import ChatOrchestrator, ChatOrchestratorHooks, Message, TurnRequest
from coach.backend.orchestrator.orchestrator import TurnOutcome, error_reply
from coach.backend.services import completion_service, marketplace_service, preamble_service
from coach.backend.services.followup_service import FollowupGenerator


logger = logging.getLogger("coach.chat")


def build_orchestrator(completion=None) -> ChatOrchestrator:
	client = completion if completion is not None else completion_service.build_completion_client()
	followups = FollowupGenerator(client)
	hooks = ChatOrchestratorHooks(
		build_preamble=preamble_service.build_preamble,
		find_featured=marketplace_service.find_featured_matching,
		generate_followups=followups.generate,
	)
	return ChatOrchestrator(hooks, client)


def to_turn_request(messages: Iterable[dict], location: Optional[str]) -> TurnRequest:
	converted = [
		Message(
			id=str(item.get("id") or uuid.uuid4().hex),
			role=item["role"],
			content=str(item.get("content") or ""),
		)
		for item in messages
	]
	return TurnRequest(messages=converted, location=location)


def run_turn(request: TurnRequest) -> TurnOutcome:
	try:
		orchestrator = build_orchestrator()
	except Exception:
		logger.exception("completion client could not be built")
		fallback = FollowupGenerator()
		return error_reply(fallback.generate, [], request.location)
	return orchestrator.run(request)
