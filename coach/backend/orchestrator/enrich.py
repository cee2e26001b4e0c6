from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from coach.backend import constants
from coach.backend.orchestrator.compose import default_followups
from coach.backend.orchestrator.types import FeaturedListing, FinalPayload, Message


logger = logging.getLogger("coach.enrich")

FindFeaturedFn = Callable[[str, Optional[str]], Sequence[FeaturedListing]]
GenerateFollowupsFn = Callable[[List[Message], str, Optional[str]], Sequence[str]]

# A "Next Steps" heading is a markdown heading or bold line, or a bare
# "Next Steps:" line, optionally behind a list bullet or number. Everything
# from the first one to the end is dropped.
_LIST_MARKER = r"(?:[-*+]\s+|\d+[.)]\s*)?"
_NEXT_STEPS_HEADING_RE = re.compile(
	r"^\s*" + _LIST_MARKER + r"(?:(?:#{1,6}\s*|\*\*|__)\s*" + _LIST_MARKER
	+ r"(?:\*\*|__)?\s*next\s+steps\b|next\s+steps\s*:?\s*$)",
	re.IGNORECASE,
)


def clamp_followups(items: Iterable[object], limit: int = constants.MAX_FOLLOWUPS) -> List[str]:
	seen: set[str] = set()
	result: List[str] = []
	for item in items:
		text = " ".join(str(item).split()).strip()
		if not text or text.lower() in seen:
			continue
		seen.add(text.lower())
		result.append(text)
		if len(result) >= limit:
			break
	return result


def split_next_steps(text: str) -> Tuple[str, bool]:
	"""Return the text before the first Next Steps heading and whether one was found."""
	lines = text.split("\n")
	for index, line in enumerate(lines):
		if _NEXT_STEPS_HEADING_RE.match(line):
			return "\n".join(lines[:index]).rstrip(), True
	return text, False


def strip_next_steps(text: str) -> str:
	body, _found = split_next_steps(text)
	return body


def featured_block(listings: Sequence[FeaturedListing], location: Optional[str]) -> str:
	if not listings:
		return ""
	loc_txt = f" near {location}" if location else ""
	lines = [f"- **{item.title}** — {item.org} ({item.location})" for item in listings]
	return f"**Featured{loc_txt}:**\n" + "\n".join(lines)


def finalize_answer(
	answer: str,
	*,
	listings: Sequence[FeaturedListing] = (),
	location: Optional[str] = None,
	include_next_steps: bool = False,
) -> str:
	"""Assemble the final answer from its sections.

	Sections are, in order: the model answer (with any model-written Next
	Steps section removed when the canonical block is added), the featured
	listings block, and the canonical Next Steps block.
	"""
	body = strip_next_steps(answer) if include_next_steps else answer
	sections = [body, featured_block(listings, location)]
	if include_next_steps:
		sections.append(constants.NEXT_STEPS_BLOCK)
	return "\n\n".join(section for section in sections if section)


@dataclass
class Enricher:
	find_featured: FindFeaturedFn
	generate_followups: GenerateFollowupsFn
	history: List[Message] = field(default_factory=list)
	last_user_raw: str = ""
	effective_location: Optional[str] = None
	internal_rag: str = ""

	def _listings(self) -> List[FeaturedListing]:
		try:
			featured = self.find_featured(self.last_user_raw, self.effective_location)
		except Exception:
			logger.exception("featured listing match failed")
			return []
		return list(featured or [])

	def _followups(self, final_answer: str) -> List[str]:
		history = list(self.history) + [Message(id="final_answer", role="assistant", content=final_answer)]
		try:
			generated = self.generate_followups(history, final_answer, self.effective_location)
		except Exception:
			logger.exception("follow-up generation failed; using defaults")
			return default_followups()
		followups = clamp_followups(generated or [])
		return followups or default_followups()

	def finalize(self, completion: str) -> FinalPayload:
		listings = self._listings()
		final_answer = finalize_answer(
			completion,
			listings=listings,
			location=self.effective_location,
			include_next_steps=bool(self.internal_rag),
		)
		followups = self._followups(final_answer)
		logger.info(
			"enriched answer chars=%d listings=%d next_steps=%s followups=%d",
			len(final_answer),
			len(listings),
			bool(self.internal_rag),
			len(followups),
		)
		return FinalPayload(final_answer=final_answer, followups=followups)
