from __future__ import annotations

import os
from typing import Dict, List

from coach.backend import constants
from coach.backend.services import completion_service, knowledge_service, marketplace_service


def _catalog_size() -> int:
	try:
		return len(marketplace_service.load_catalog())
	except (OSError, ValueError):
		return 0


def _provider_summary() -> Dict[str, object]:
	warnings: List[str] = []
	try:
		configured_mode = completion_service.provider_mode()
	except completion_service.CompletionServiceError as exc:
		return {"mode": None, "effective_mode": None, "ready": False, "warnings": [exc.message]}
	effective_mode = completion_service.resolved_provider_mode(configured_mode)
	if effective_mode == "openai":
		if not os.getenv("OPENAI_API_KEY", "").strip():
			warnings.append("OpenAI API key not configured. Set OPENAI_API_KEY.")
		try:
			completion_service.openai_timeout()
		except completion_service.CompletionServiceError as exc:
			warnings.append(exc.message)
	return {
		"mode": configured_mode,
		"effective_mode": effective_mode,
		"model": completion_service.openai_model(),
		"ready": not warnings,
		"warnings": warnings,
	}


def get_summary() -> Dict[str, object]:
	return {
		"app": {"name": constants.APP_NAME, "version": constants.APP_VERSION},
		"provider": _provider_summary(),
		"knowledge_entries": len(knowledge_service.load_entries()),
		"featured_listings": _catalog_size(),
	}
