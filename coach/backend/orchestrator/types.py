from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Literal, Optional


Role = Literal["system", "user", "assistant"]
Intent = Literal["quiz", "chat", "explain"]


class LocationRequiredError(Exception):
	"""Raised by the preamble builder when a query needs a location and none is set."""

	def __init__(self, message: str = "LOCATION_REQUIRED"):
		super().__init__(message)
		self.message = message


@dataclass(frozen=True)
class Message:
	id: str
	role: Role
	content: str


@dataclass(frozen=True)
class FeaturedListing:
	title: str
	org: str
	location: str


@dataclass
class PreambleResult:
	messages_for_llm: List[Message] = field(default_factory=list)
	last_user_raw: str = ""
	effective_location: Optional[str] = None
	internal_rag: str = ""
	domain_guarded: bool = False


@dataclass
class TurnRequest:
	messages: List[Message]
	location: Optional[str] = None


@dataclass
class FinalPayload:
	final_answer: str
	followups: List[str]

	def as_dict(self) -> Dict[str, Any]:
		return {"finalAnswer": self.final_answer, "followups": list(self.followups)}


@dataclass
class ChatReply:
	"""Non-streaming outcome: guard, location-required and error branches."""

	answer: str
	followups: List[str]
	status_code: int = 200

	def as_dict(self) -> Dict[str, Any]:
		return {"answer": self.answer, "followups": list(self.followups)}


@dataclass
class ChatStream:
	"""Streaming outcome.

	`events` yields `("delta", str)` for every model token and finishes with a
	single `("final", FinalPayload)` once the enrichment has run.
	"""

	events: Iterator[tuple]
	model: str
	provider_mode: str
