import json
import os
from unittest import TestCase
from unittest.mock import patch

from fastapi.testclient import TestClient

from coach.backend import constants
from coach.backend.main import app


def _parse_sse_events(raw: str):
	events = []
	for frame in raw.split("\n\n"):
		frame = frame.strip()
		if not frame:
			continue
		event_name = "message"
		data_lines = []
		for line in frame.splitlines():
			if line.startswith("event:"):
				event_name = line.split(":", 1)[1].strip()
			elif line.startswith("data:"):
				data_lines.append(line.split(":", 1)[1].strip())
		data = {}
		if data_lines:
			try:
				data = json.loads("\n".join(data_lines))
			except json.JSONDecodeError:
				data = {"raw": "\n".join(data_lines)}
		events.append((event_name, data))
	return events


class _BrokenStreamCompletion:
	model = "fake-model"
	provider_mode = "openai"

	def __init__(self, *, open_error=None):
		self._open_error = open_error

	def open_stream(self, messages):
		if self._open_error is not None:
			raise self._open_error
		return self._iterate()

	def _iterate(self):
		yield "Partial answer "
		raise ConnectionError("stream dropped")


def _user(text: str):
	return {"id": "u1", "role": "user", "content": text}


class ChatApiTests(TestCase):
	def setUp(self) -> None:
		self.client = TestClient(app)
		self._env = patch.dict(os.environ, {"COACH_PROVIDER_MODE": "local"}, clear=False)
		self._env.start()

	def tearDown(self) -> None:
		self._env.stop()

	def _stream(self, payload):
		with self.client.stream("POST", "/api/chat", json=payload) as response:
			self.assertEqual(response.status_code, 200)
			self.assertTrue(response.headers["content-type"].startswith("text/event-stream"))
			raw = "".join(response.iter_text())
		return _parse_sse_events(raw)

	def test_cnc_question_streams_tokens_then_final_payload(self) -> None:
		events = self._stream({"messages": [_user("What does a CNC machinist do?")], "location": "Austin, TX"})
		names = [name for name, _ in events]
		self.assertEqual(names[0], "meta")
		self.assertIn("delta", names)
		self.assertEqual(names[-1], "final")
		self.assertEqual(names.count("final"), 1)
		self.assertNotIn("error", names)

		streamed = "".join(data["text"] for name, data in events if name == "delta")
		final = events[-1][1]
		self.assertEqual(set(final), {"finalAnswer", "followups"})
		answer = final["finalAnswer"]
		self.assertTrue(answer.startswith(streamed))
		self.assertIn("- **CNC Machinist Apprenticeship** — Austin Community College (Austin, TX)", answer)
		self.assertEqual(answer.count("Next Steps"), 1)
		self.assertTrue(answer.endswith(constants.NEXT_STEPS_BLOCK))
		self.assertGreaterEqual(len(final["followups"]), 1)
		self.assertLessEqual(len(final["followups"]), 3)

	def test_off_topic_question_returns_guard_reply(self) -> None:
		response = self.client.post("/api/chat", json={"messages": [_user("Give me a lasagna recipe")]})
		self.assertEqual(response.status_code, 200)
		self.assertEqual(
			response.json(),
			{"answer": constants.OFF_DOMAIN_ANSWER, "followups": list(constants.DEFAULT_FOLLOWUPS)},
		)

	def test_local_question_without_location_asks_for_location(self) -> None:
		response = self.client.post("/api/chat", json={"messages": [_user("Show me welding jobs near me")]})
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.json(), {"answer": constants.LOCATION_REQUIRED_ANSWER, "followups": []})

	def test_completion_failure_returns_500_with_followups(self) -> None:
		broken = _BrokenStreamCompletion(open_error=RuntimeError("provider down"))
		with patch(
			"coach.backend.services.completion_service.build_completion_client",
			return_value=broken,
		):
			response = self.client.post("/api/chat", json={"messages": [_user("What does a CNC machinist do?")]})
		self.assertEqual(response.status_code, 500)
		payload = response.json()
		self.assertEqual(payload["answer"], constants.ERROR_ANSWER)
		self.assertGreaterEqual(len(payload["followups"]), 1)
		self.assertLessEqual(len(payload["followups"]), 3)

	def test_unconfigured_provider_returns_500_with_followups(self) -> None:
		with patch.dict(os.environ, {"COACH_PROVIDER_MODE": "cloud"}, clear=False):
			response = self.client.post("/api/chat", json={"messages": [_user("What does a CNC machinist do?")]})
		self.assertEqual(response.status_code, 500)
		payload = response.json()
		self.assertEqual(payload["answer"], constants.ERROR_ANSWER)
		self.assertEqual(len(payload["followups"]), 3)

	def test_unexpected_client_build_failure_returns_500_with_followups(self) -> None:
		with patch(
			"coach.backend.services.completion_service.build_completion_client",
			side_effect=RuntimeError("sdk import exploded"),
		):
			with self.assertLogs("coach.chat", level="ERROR"):
				response = self.client.post("/api/chat", json={"messages": [_user("What does a CNC machinist do?")]})
		self.assertEqual(response.status_code, 500)
		payload = response.json()
		self.assertEqual(payload["answer"], constants.ERROR_ANSWER)
		self.assertGreaterEqual(len(payload["followups"]), 1)
		self.assertLessEqual(len(payload["followups"]), 3)

	def test_mid_stream_failure_emits_error_without_final(self) -> None:
		with patch(
			"coach.backend.services.completion_service.build_completion_client",
			return_value=_BrokenStreamCompletion(),
		):
			events = self._stream({"messages": [_user("What does a CNC machinist do?")]})
		names = [name for name, _ in events]
		self.assertEqual(names, ["meta", "delta", "error"])
		self.assertEqual(events[-1][1]["code"], "completion_stream_error")

	def test_invalid_payload_returns_validation_envelope(self) -> None:
		response = self.client.post("/api/chat", json={"messages": [{"role": "robot", "content": "hi"}]})
		self.assertEqual(response.status_code, 422)
		payload = response.json()
		self.assertFalse(payload["ok"])
		self.assertEqual(payload["error"]["code"], "validation_error")
		self.assertGreaterEqual(len(payload["error"]["evidence"]), 1)

	def test_request_id_header_is_echoed(self) -> None:
		response = self.client.post(
			"/api/chat",
			headers={"X-Request-ID": "req-123"},
			json={"messages": [_user("Give me a lasagna recipe")]},
		)
		self.assertEqual(response.headers["X-Request-ID"], "req-123")
		self.assertIn("X-Process-Time", response.headers)


class HealthApiTests(TestCase):
	def setUp(self) -> None:
		self.client = TestClient(app)

	def test_health_summary_reports_provider_and_data(self) -> None:
		with patch.dict(os.environ, {"COACH_PROVIDER_MODE": "local"}, clear=False):
			response = self.client.get("/api/health/summary")
		self.assertEqual(response.status_code, 200)
		payload = response.json()
		self.assertTrue(payload["ok"])
		data = payload["data"]
		self.assertEqual(data["provider"]["effective_mode"], "local")
		self.assertTrue(data["provider"]["ready"])
		self.assertGreater(data["knowledge_entries"], 0)
		self.assertGreater(data["featured_listings"], 0)

	def test_health_summary_flags_openai_without_key(self) -> None:
		with patch.dict(os.environ, {"COACH_PROVIDER_MODE": "openai"}, clear=False):
			os.environ.pop("OPENAI_API_KEY", None)
			response = self.client.get("/api/health/summary")
		provider = response.json()["data"]["provider"]
		self.assertFalse(provider["ready"])
		self.assertGreaterEqual(len(provider["warnings"]), 1)
