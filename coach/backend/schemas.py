from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ApiError(BaseModel):
	model_config = ConfigDict(extra="forbid")

	code: str
	message: str
	evidence: List[str] = Field(default_factory=list)


class ApiEnvelope(BaseModel):
	model_config = ConfigDict(extra="allow")

	ok: bool
	generated_at: str
	request_id: Optional[str] = None
	data: Optional[Dict[str, Any]] = None
	error: Optional[ApiError] = None


class ChatMessage(BaseModel):
	model_config = ConfigDict(extra="ignore")

	id: Optional[str] = None
	role: Literal["system", "user", "assistant"]
	content: str = ""


class ChatRequest(BaseModel):
	model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

	messages: List[ChatMessage] = Field(..., description="Conversation so far, oldest first.")
	location: Optional[str] = Field(default=None, description="Optional user location, e.g. 'Austin, TX'.")


class ChatAnswer(BaseModel):
	model_config = ConfigDict(extra="forbid")

	answer: str
	followups: List[str] = Field(default_factory=list, max_length=3)


class FinalPayloadModel(BaseModel):
	model_config = ConfigDict(extra="forbid")

	finalAnswer: str
	followups: List[str] = Field(default_factory=list, max_length=3)
