from unittest import TestCase

from coach.backend.orchestrator.intent import classify_intent


class IntentClassifierTests(TestCase):
	def test_quiz_phrases(self) -> None:
		self.assertEqual(classify_intent("Can I take a QUIZ?"), "quiz")
		self.assertEqual(classify_intent("Which career fits me best?"), "quiz")

	def test_explain_phrases(self) -> None:
		self.assertEqual(classify_intent("Explain what a PLC is"), "explain")
		self.assertEqual(classify_intent("How does an apprenticeship work?"), "explain")

	def test_quiz_wins_over_explain(self) -> None:
		self.assertEqual(classify_intent("Explain which career suits a welder"), "quiz")

	def test_default_and_empty_are_chat(self) -> None:
		self.assertEqual(classify_intent("Tell me about welding"), "chat")
		self.assertEqual(classify_intent(""), "chat")

	def test_classification_is_logged(self) -> None:
		with self.assertLogs("coach.intent", level="INFO") as logs:
			classify_intent("quiz me")
		self.assertTrue(any("intent=quiz" in line for line in logs.output))
