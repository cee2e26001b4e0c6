from __future__ import annotations

import json
import logging
import re
from typing import Any, List, Optional, Sequence

from coach.backend.orchestrator.enrich import clamp_followups
from coach.backend.orchestrator.types import Message
from coach.backend.prompts import FOLLOWUP_SYSTEM_PROMPT


logger = logging.getLogger("coach.followups")

_HISTORY_TURNS = 6

_TOPIC_FOLLOWUPS = (
	(("apprentice",), "How do I find a paid apprenticeship?"),
	(("salary", "salaries", "pay", "wage"), "What does this role typically pay?"),
	(("certificate", "certification", "credential"), "Which certification should I get first?"),
	(("cnc", "machinist"), "What does a day look like for a CNC machinist?"),
	(("robot",), "What training do robotics technicians need?"),
	(("weld",), "How long does welding certification take?"),
	(("quality", "inspector"), "How do I get started in quality control?"),
	(("maintenance",), "What skills do maintenance techs need?"),
)
_GENERIC_FOLLOWUPS = (
	"What skills should I build first?",
	"Take a quick career quiz",
	"Compare two manufacturing roles",
)


class FollowupGenerationError(Exception):
	pass


def _extract_json_array(raw: str) -> List[Any]:
	text = raw.strip()
	if text.startswith("```"):
		text = re.sub(r"^```[a-zA-Z]*\s*|\s*```$", "", text)
	try:
		parsed = json.loads(text)
	except json.JSONDecodeError:
		match = re.search(r"\[.*\]", text, flags=re.DOTALL)
		if not match:
			raise FollowupGenerationError("Follow-up provider returned no JSON array.")
		try:
			parsed = json.loads(match.group(0))
		except json.JSONDecodeError as exc:
			raise FollowupGenerationError("Follow-up provider returned invalid JSON.") from exc
	if not isinstance(parsed, list):
		raise FollowupGenerationError("Follow-up provider returned a non-list payload.")
	return parsed


def local_followups(final_answer: str, location: Optional[str] = None) -> List[str]:
	lowered = final_answer.lower()
	candidates: List[str] = []
	for keywords, question in _TOPIC_FOLLOWUPS:
		if any(word in lowered for word in keywords):
			candidates.append(question)
	if location:
		candidates.insert(min(1, len(candidates)), f"Show training programs near {location}")
	candidates.extend(_GENERIC_FOLLOWUPS)
	return clamp_followups(candidates)


class FollowupGenerator:
	def __init__(self, completion: Any = None):
		self._completion = completion

	def _prompt(self, history: Sequence[Message], final_answer: str, location: Optional[str]) -> List[Message]:
		turns = [m for m in history if m.role in {"user", "assistant"}][-_HISTORY_TURNS:]
		transcript = "\n".join(f"{m.role}: {m.content}" for m in turns)
		lines = [f"Conversation:\n{transcript}", f"Latest answer:\n{final_answer}"]
		if location:
			lines.append(f"User location: {location}")
		return [
			Message(id="followup_system", role="system", content=FOLLOWUP_SYSTEM_PROMPT),
			Message(id="followup_request", role="user", content="\n\n".join(lines)),
		]

	def generate(
		self,
		history: Sequence[Message],
		final_answer: str,
		location: Optional[str] = None,
	) -> List[str]:
		complete = getattr(self._completion, "complete", None)
		if not callable(complete):
			return local_followups(final_answer, location)
		raw = complete(self._prompt(history, final_answer, location))
		followups = clamp_followups(item for item in _extract_json_array(raw) if isinstance(item, str))
		logger.info("follow-ups generated count=%d", len(followups))
		return followups
