from __future__ import annotations

import logging
import os
import re
import uuid
from typing import List, Optional, Sequence

from coach.backend import constants
from coach.backend.orchestrator.types import LocationRequiredError, Message, PreambleResult
from coach.backend.services import knowledge_service


logger = logging.getLogger("coach.preamble")

_LOCAL_PHRASES = ("near me", "nearby", "in my area", "around me", "close to me")
_LOCAL_TOKENS = {"local", "locally"}

_DOMAIN_TOKENS = {
	"apprenticeship", "apprenticeships", "assembly", "automation", "cad", "career", "careers",
	"certificate", "certificates", "certification", "certifications", "cnc", "electrician", "electricians",
	"engineer", "engineers", "factory", "factories", "fabrication", "hiring", "inspector", "inspectors",
	"internship", "job", "jobs", "machinist", "machinists", "machining", "maintenance", "manufacturing",
	"mechatronics", "plant", "plants", "plc", "program", "programs", "quality", "resume", "robot", "robots",
	"robotics", "salary", "salaries", "skills", "technician", "technicians", "trade", "trades", "training",
	"weld", "welder", "welders", "welding", "work",
}
_OFF_TOPIC_TOKENS = {
	"recipe", "recipes", "celebrity", "horoscope", "lottery", "movie", "movies", "nba", "nfl",
	"poem", "song", "lyrics", "dating", "crypto", "bitcoin", "weather", "score", "scores",
}


def _int_env(name: str, default: int, minimum: int = 1) -> int:
	raw = os.getenv(name, "").strip()
	if not raw:
		return default
	try:
		value = int(raw)
	except ValueError:
		return default
	return value if value >= minimum else default


def context_turns() -> int:
	return _int_env("COACH_CONTEXT_TURNS", constants.DEFAULT_CONTEXT_TURNS)


def _tokenize(text: str) -> List[str]:
	return re.findall(r"[a-z0-9']+", text.lower())


def normalize_history(messages: Sequence[Message], max_turns: int | None = None) -> List[Message]:
	limit = max_turns if isinstance(max_turns, int) and max_turns > 0 else context_turns()
	normalized: List[Message] = []
	for message in messages:
		if message.role not in {"user", "assistant"}:
			continue
		content = " ".join(message.content.split()).strip()
		if not content:
			continue
		message_id = message.id or uuid.uuid4().hex
		normalized.append(Message(id=message_id, role=message.role, content=content))
	return normalized[-limit:]


def needs_location(text: str) -> bool:
	lowered = text.lower()
	if any(phrase in lowered for phrase in _LOCAL_PHRASES):
		return True
	return bool(set(_tokenize(lowered)) & _LOCAL_TOKENS)


def is_off_domain(text: str) -> bool:
	tokens = set(_tokenize(text))
	if not tokens or tokens & _DOMAIN_TOKENS:
		return False
	return bool(tokens & _OFF_TOPIC_TOKENS)


def build_preamble(messages: Sequence[Message], location: Optional[str] = None) -> PreambleResult:
	history = normalize_history(messages)
	last_user_raw = next((m.content for m in reversed(history) if m.role == "user"), "")
	effective_location = location.strip() if location and location.strip() else None

	if needs_location(last_user_raw) and not effective_location:
		raise LocationRequiredError()

	if is_off_domain(last_user_raw):
		logger.info("domain guard triggered turns=%d", len(history))
		return PreambleResult(
			messages_for_llm=history,
			last_user_raw=last_user_raw,
			effective_location=effective_location,
			domain_guarded=True,
		)

	internal_rag = knowledge_service.format_context(knowledge_service.search(last_user_raw))
	messages_for_llm = list(history)
	if internal_rag:
		messages_for_llm.insert(
			0,
			Message(id="system_internal_rag", role="system", content=f"Internal knowledge:\n{internal_rag}"),
		)
	logger.info(
		"preamble built turns=%d internal_rag=%s location=%s",
		len(history),
		bool(internal_rag),
		bool(effective_location),
	)
	return PreambleResult(
		messages_for_llm=messages_for_llm,
		last_user_raw=last_user_raw,
		effective_location=effective_location,
		internal_rag=internal_rag,
	)
