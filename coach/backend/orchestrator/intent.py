from __future__ import annotations

import logging

from coach.backend.orchestrator.types import Intent


logger = logging.getLogger("coach.intent")

_QUIZ_PHRASES = ("quiz", "which career")
_EXPLAIN_PHRASES = ("explain", "how does")


def classify_intent(text: str) -> Intent:
	# Informational only; routing does not depend on the label yet.
	lowered = (text or "").lower()
	intent: Intent = "chat"
	if any(phrase in lowered for phrase in _QUIZ_PHRASES):
		intent = "quiz"
	elif any(phrase in lowered for phrase in _EXPLAIN_PHRASES):
		intent = "explain"
	logger.info("intent=%s chars=%d", intent, len(lowered))
	return intent
