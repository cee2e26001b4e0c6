import os
from unittest import TestCase
from unittest.mock import patch

from coach.backend.orchestrator.types import Message
from coach.backend.services import completion_service


def _chunk(content):
	delta = type("Delta", (), {"content": content})()
	choice = type("Choice", (), {"delta": delta})()
	return type("Chunk", (), {"choices": [choice]})()


class _FakeCompletions:
	def __init__(self, *, chunks=None, error=None, content=None):
		self._chunks = chunks or []
		self._error = error
		self._content = content
		self.kwargs = []

	def create(self, **kwargs):
		self.kwargs.append(kwargs)
		if self._error is not None:
			raise self._error
		if kwargs.get("stream"):
			return iter(self._chunks)
		message = type("Msg", (), {"content": self._content})()
		choice = type("Choice", (), {"message": message})()
		return type("Response", (), {"choices": [choice]})()


class _FakeClient:
	def __init__(self, **kwargs):
		self.chat = type("Chat", (), {})()
		self.chat.completions = _FakeCompletions(**kwargs)


_MESSAGES = [
	Message(id="system_prompt", role="system", content="SYSTEM"),
	Message(id="u1", role="user", content="What does a CNC machinist do?"),
]


class OpenAICompletionClientTests(TestCase):
	def test_stream_yields_non_empty_deltas_in_order(self) -> None:
		fake = _FakeClient(chunks=[_chunk("CNC "), _chunk(None), _chunk(""), _chunk("rocks")])
		client = completion_service.OpenAICompletionClient(client=fake, model="gpt-4.1-mini")
		tokens = list(client.open_stream(_MESSAGES))
		self.assertEqual(tokens, ["CNC ", "rocks"])
		kwargs = fake.chat.completions.kwargs[0]
		self.assertEqual(kwargs["model"], "gpt-4.1-mini")
		self.assertEqual(kwargs["temperature"], 0.3)
		self.assertTrue(kwargs["stream"])
		self.assertEqual(kwargs["messages"][0], {"role": "system", "content": "SYSTEM"})

	def test_open_failure_raises_before_any_token(self) -> None:
		class APIError(Exception):
			pass

		client = completion_service.OpenAICompletionClient(client=_FakeClient(error=APIError("boom")))
		with self.assertRaises(completion_service.CompletionServiceError) as ctx:
			client.open_stream(_MESSAGES)
		self.assertEqual(ctx.exception.status_code, 502)
		self.assertEqual(ctx.exception.code, "completion_provider_error")

	def test_timeout_maps_to_504(self) -> None:
		class APITimeoutError(Exception):
			pass

		client = completion_service.OpenAICompletionClient(client=_FakeClient(error=APITimeoutError("slow")))
		with self.assertRaises(completion_service.CompletionServiceError) as ctx:
			client.open_stream(_MESSAGES)
		self.assertEqual(ctx.exception.status_code, 504)
		self.assertEqual(ctx.exception.code, "completion_provider_timeout")

	def test_complete_returns_message_text(self) -> None:
		client = completion_service.OpenAICompletionClient(client=_FakeClient(content='  ["A?"] '))
		self.assertEqual(client.complete(_MESSAGES), '["A?"]')


class LocalCompletionClientTests(TestCase):
	def test_local_stream_uses_internal_knowledge(self) -> None:
		messages = [
			Message(id="system_internal_rag", role="system", content="Internal knowledge:\nCNC Machinist: runs mills."),
		] + _MESSAGES
		text = "".join(completion_service.LocalCompletionClient().open_stream(messages))
		self.assertIn("What does a CNC machinist do?", text)
		self.assertIn("- CNC Machinist: runs mills.", text)

	def test_local_stream_is_chunked(self) -> None:
		tokens = list(completion_service.LocalCompletionClient().open_stream(_MESSAGES))
		self.assertGreater(len(tokens), 1)


class ProviderConfigTests(TestCase):
	def test_auto_without_key_builds_local_client(self) -> None:
		with patch.dict(os.environ, {"COACH_PROVIDER_MODE": "auto"}, clear=False):
			os.environ.pop("OPENAI_API_KEY", None)
			client = completion_service.build_completion_client()
		self.assertIsInstance(client, completion_service.LocalCompletionClient)

	def test_openai_mode_builds_openai_client_with_model(self) -> None:
		with patch.dict(
			os.environ,
			{"COACH_PROVIDER_MODE": "openai", "OPENAI_API_KEY": "test-key", "COACH_OPENAI_MODEL": "gpt-4o-mini"},
			clear=False,
		), patch(
			"coach.backend.services.completion_service._build_openai_client",
			return_value=_FakeClient(),
		) as build:
			client = completion_service.build_completion_client()
		self.assertIsInstance(client, completion_service.OpenAICompletionClient)
		self.assertEqual(client.model, "gpt-4o-mini")
		build.assert_called_once_with(api_key="test-key", timeout_s=30.0)

	def test_openai_mode_without_key_is_unconfigured(self) -> None:
		with patch.dict(os.environ, {"COACH_PROVIDER_MODE": "openai"}, clear=False):
			os.environ.pop("OPENAI_API_KEY", None)
			with self.assertRaises(completion_service.CompletionServiceError) as ctx:
				completion_service.build_completion_client()
		self.assertEqual(ctx.exception.status_code, 503)

	def test_invalid_mode_is_rejected(self) -> None:
		with patch.dict(os.environ, {"COACH_PROVIDER_MODE": "cloud"}, clear=False):
			with self.assertRaises(completion_service.CompletionServiceError) as ctx:
				completion_service.provider_mode()
		self.assertEqual(ctx.exception.code, "completion_provider_unconfigured")

	def test_timeout_must_be_positive_number(self) -> None:
		with patch.dict(os.environ, {"COACH_OPENAI_TIMEOUT_S": "soon"}, clear=False):
			with self.assertRaises(completion_service.CompletionServiceError):
				completion_service.openai_timeout()
		with patch.dict(os.environ, {"COACH_OPENAI_TIMEOUT_S": "0"}, clear=False):
			with self.assertRaises(completion_service.CompletionServiceError):
				completion_service.openai_timeout()
		with patch.dict(os.environ, {"COACH_OPENAI_TIMEOUT_S": "12.5"}, clear=False):
			self.assertEqual(completion_service.openai_timeout(), 12.5)
