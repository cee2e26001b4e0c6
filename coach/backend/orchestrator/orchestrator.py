from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Union

from coach.backend import constants
from coach.backend.orchestrator.compose import compose_messages, default_followups, guarded_reply, is_domain_guarded
from coach.backend.orchestrator.enrich import Enricher, FindFeaturedFn, GenerateFollowupsFn, clamp_followups
from coach.backend.orchestrator.intent import classify_intent
from coach.backend.orchestrator.stream import relay_tokens
from coach.backend.orchestrator.types import (
	ChatReply,
	ChatStream,
	LocationRequiredError,
	Message,
	PreambleResult,
	TurnRequest,
)
from coach.backend.prompts import COACH_SYSTEM_PROMPT


logger = logging.getLogger("coach.orchestrator")

BuildPreambleFn = Callable[[Sequence[Message], Optional[str]], PreambleResult]
TurnOutcome = Union[ChatReply, ChatStream]


@dataclass
class ChatOrchestratorHooks:
	build_preamble: BuildPreambleFn
	find_featured: FindFeaturedFn
	generate_followups: GenerateFollowupsFn


def location_required_reply() -> ChatReply:
	return ChatReply(answer=constants.LOCATION_REQUIRED_ANSWER, followups=[])


def error_reply(
	generate_followups: GenerateFollowupsFn,
	messages: List[Message],
	location: Optional[str],
) -> ChatReply:
	try:
		followups = clamp_followups(generate_followups(messages, constants.ERROR_ANSWER, location) or [])
	except Exception:
		logger.exception("follow-up generation failed on error path")
		followups = []
	return ChatReply(
		answer=constants.ERROR_ANSWER,
		followups=followups or default_followups(),
		status_code=500,
	)


def _last_user_text(messages: Sequence[Message]) -> str:
	for message in reversed(messages):
		if message.role == "user":
			return message.content
	return ""


class ChatOrchestrator:
	def __init__(self, hooks: ChatOrchestratorHooks, completion: Any, system_prompt: str = COACH_SYSTEM_PROMPT):
		self._hooks = hooks
		self._completion = completion
		self._system_prompt = system_prompt

	def run(self, request: TurnRequest) -> TurnOutcome:
		messages_for_llm: List[Message] = []
		effective_location: Optional[str] = None
		try:
			classify_intent(_last_user_text(request.messages))

			preamble = self._hooks.build_preamble(request.messages, request.location)
			messages_for_llm = list(preamble.messages_for_llm)
			effective_location = preamble.effective_location

			if is_domain_guarded(preamble):
				return guarded_reply()

			composed = compose_messages(self._system_prompt, effective_location, messages_for_llm)
			tokens = self._completion.open_stream(composed)
		except LocationRequiredError:
			logger.info("location required; asking user to set one")
			return location_required_reply()
		except Exception:
			logger.exception("chat turn failed before streaming")
			return error_reply(self._hooks.generate_followups, messages_for_llm, effective_location)

		enricher = Enricher(
			find_featured=self._hooks.find_featured,
			generate_followups=self._hooks.generate_followups,
			history=messages_for_llm,
			last_user_raw=preamble.last_user_raw,
			effective_location=effective_location,
			internal_rag=preamble.internal_rag,
		)
		return ChatStream(
			events=relay_tokens(tokens, enricher.finalize),
			model=str(getattr(self._completion, "model", "")),
			provider_mode=str(getattr(self._completion, "provider_mode", "")),
		)
