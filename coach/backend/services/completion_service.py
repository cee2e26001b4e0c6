from __future__ import annotations

import logging
import os
import re
from typing import Any, Dict, Iterator, List, Literal, Sequence

from coach.backend import constants
from coach.backend.orchestrator.types import Message


ProviderMode = Literal["auto", "openai", "local"]

logger = logging.getLogger("coach.completion")

_LOCAL_CHUNK_CHARS = 24
_INTERNAL_KNOWLEDGE_PREFIX = "Internal knowledge:"


class CompletionServiceError(Exception):
	def __init__(self, *, status_code: int, code: str, message: str):
		super().__init__(message)
		self.status_code = status_code
		self.code = code
		self.message = message


def provider_mode() -> ProviderMode:
	mode = os.getenv("COACH_PROVIDER_MODE", "auto").strip().lower() or "auto"
	if mode not in {"auto", "openai", "local"}:
		raise CompletionServiceError(
			status_code=503,
			code="completion_provider_unconfigured",
			message="COACH_PROVIDER_MODE must be one of: auto, openai, local.",
		)
	return mode  # type: ignore[return-value]


def resolved_provider_mode(configured_mode: ProviderMode) -> ProviderMode:
	if configured_mode in {"local", "openai"}:
		return configured_mode
	has_openai_key = bool(os.getenv("OPENAI_API_KEY", "").strip())
	return "openai" if has_openai_key else "local"


def openai_model() -> str:
	return os.getenv("COACH_OPENAI_MODEL", constants.DEFAULT_OPENAI_MODEL).strip() or constants.DEFAULT_OPENAI_MODEL


def openai_timeout() -> float:
	raw = os.getenv("COACH_OPENAI_TIMEOUT_S", "").strip()
	if not raw:
		return constants.DEFAULT_OPENAI_TIMEOUT_S
	try:
		value = float(raw)
	except ValueError as exc:
		raise CompletionServiceError(
			status_code=503,
			code="completion_provider_unconfigured",
			message="COACH_OPENAI_TIMEOUT_S must be numeric.",
		) from exc
	if value <= 0:
		raise CompletionServiceError(
			status_code=503,
			code="completion_provider_unconfigured",
			message="COACH_OPENAI_TIMEOUT_S must be greater than zero.",
		)
	return value


def _openai_api_key() -> str:
	key = os.getenv("OPENAI_API_KEY", "").strip()
	if key:
		return key
	raise CompletionServiceError(
		status_code=503,
		code="completion_provider_unconfigured",
		message="OpenAI API key not configured. Set OPENAI_API_KEY.",
	)


def _build_openai_client(*, api_key: str, timeout_s: float):
	from openai import OpenAI

	return OpenAI(api_key=api_key, timeout=timeout_s)


def _openai_error(exc: Exception) -> CompletionServiceError:
	name = exc.__class__.__name__
	if isinstance(exc, TimeoutError) or name == "APITimeoutError":
		return CompletionServiceError(
			status_code=504,
			code="completion_provider_timeout",
			message="Completion provider timed out.",
		)
	return CompletionServiceError(
		status_code=502,
		code="completion_provider_error",
		message="Completion provider request failed.",
	)


def _wire_messages(messages: Sequence[Message]) -> List[Dict[str, str]]:
	return [{"role": message.role, "content": message.content} for message in messages]


def _extract_chunk_delta(chunk: Any) -> str:
	choices = getattr(chunk, "choices", None)
	if choices is None and isinstance(chunk, dict):
		choices = chunk.get("choices")
	if not choices:
		return ""
	first = choices[0]
	delta = getattr(first, "delta", None)
	if delta is None and isinstance(first, dict):
		delta = first.get("delta")
	if delta is None:
		return ""
	content = getattr(delta, "content", None)
	if content is None and isinstance(delta, dict):
		content = delta.get("content")
	return content if isinstance(content, str) else ""


def _iter_deltas(stream: Any) -> Iterator[str]:
	for chunk in stream:
		delta = _extract_chunk_delta(chunk)
		if delta:
			yield delta


class OpenAICompletionClient:
	provider_mode = "openai"

	def __init__(
		self,
		*,
		client: Any,
		model: str = constants.DEFAULT_OPENAI_MODEL,
		temperature: float = constants.DEFAULT_OPENAI_TEMPERATURE,
	):
		self._client = client
		self.model = model
		self.temperature = temperature

	def open_stream(self, messages: Sequence[Message]) -> Iterator[str]:
		"""Open a streaming completion; raises before any token if the request fails."""
		try:
			stream = self._client.chat.completions.create(
				model=self.model,
				temperature=self.temperature,
				messages=_wire_messages(messages),
				stream=True,
			)
		except Exception as exc:
			raise _openai_error(exc) from exc
		logger.info("completion stream opened model=%s messages=%d", self.model, len(messages))
		return _iter_deltas(stream)

	def complete(self, messages: Sequence[Message]) -> str:
		try:
			response = self._client.chat.completions.create(
				model=self.model,
				temperature=self.temperature,
				messages=_wire_messages(messages),
			)
		except Exception as exc:
			raise _openai_error(exc) from exc
		choices = getattr(response, "choices", None) or []
		if not choices:
			return ""
		content = getattr(choices[0].message, "content", None)
		return content.strip() if isinstance(content, str) else ""


def _chunk_text(text: str, size: int = _LOCAL_CHUNK_CHARS) -> List[str]:
	if not text:
		return []
	return [text[i : i + size] for i in range(0, len(text), size)]


def _last_user_text(messages: Sequence[Message]) -> str:
	for message in reversed(messages):
		if message.role == "user":
			return " ".join(message.content.split())
	return ""


def _internal_knowledge(messages: Sequence[Message]) -> str:
	for message in messages:
		if message.role == "system" and message.content.startswith(_INTERNAL_KNOWLEDGE_PREFIX):
			return message.content[len(_INTERNAL_KNOWLEDGE_PREFIX) :].strip()
	return ""


def _local_answer(messages: Sequence[Message]) -> str:
	question = _last_user_text(messages)
	knowledge = _internal_knowledge(messages)
	lines = [f"Great question! Here is a quick take on \"{question}\"." if question else "Happy to help with your career search."]
	if knowledge:
		for entry in knowledge.split("\n\n"):
			summary = re.sub(r"\s+", " ", entry).strip()
			if summary:
				lines.append(f"- {summary}")
	else:
		lines.append(
			"Modern manufacturing offers hands-on roles with strong demand, "
			"and many start with a short certificate or a paid apprenticeship."
		)
	return "\n".join(lines)


class LocalCompletionClient:
	"""Deterministic offline provider used when no OpenAI key is configured."""

	provider_mode = "local"

	def __init__(self, *, model: str = constants.DEFAULT_OPENAI_MODEL):
		self.model = model

	def open_stream(self, messages: Sequence[Message]) -> Iterator[str]:
		return iter(_chunk_text(_local_answer(messages)))


def build_completion_client():
	mode = resolved_provider_mode(provider_mode())
	model = openai_model()
	if mode == "local":
		return LocalCompletionClient(model=model)
	client = _build_openai_client(api_key=_openai_api_key(), timeout_s=openai_timeout())
	return OpenAICompletionClient(client=client, model=model)
