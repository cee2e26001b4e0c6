from __future__ import annotations

from typing import List, Optional, Sequence

from coach.backend import constants
from coach.backend.orchestrator.types import ChatReply, Message, PreambleResult


def default_followups() -> List[str]:
	return list(constants.DEFAULT_FOLLOWUPS[: constants.MAX_FOLLOWUPS])


def is_domain_guarded(preamble: PreambleResult) -> bool:
	return bool(preamble.domain_guarded)


def guarded_reply() -> ChatReply:
	return ChatReply(answer=constants.OFF_DOMAIN_ANSWER, followups=default_followups())


def compose_messages(
	system_prompt: str,
	location: Optional[str],
	prior: Sequence[Message],
) -> List[Message]:
	composed = [Message(id="system_prompt", role="system", content=system_prompt)]
	if location and location.strip():
		composed.append(
			Message(id="system_location", role="system", content=f"User location: {location.strip()}")
		)
	composed.extend(prior)
	return composed
