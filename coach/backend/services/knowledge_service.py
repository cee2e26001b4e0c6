from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence


logger = logging.getLogger("coach.knowledge")

_DEFAULT_KNOWLEDGE_PATH = Path(__file__).resolve().parents[1] / "data" / "knowledge.json"


@dataclass(frozen=True)
class KnowledgeEntry:
	slug: str
	title: str
	summary: str
	keywords: List[str] = field(default_factory=list)


def knowledge_path() -> Path:
	raw = os.getenv("COACH_KNOWLEDGE_PATH", "").strip()
	return Path(raw) if raw else _DEFAULT_KNOWLEDGE_PATH


def load_entries(path: Path | None = None) -> List[KnowledgeEntry]:
	target = path or knowledge_path()
	try:
		with open(target, "r", encoding="utf-8") as handle:
			raw = json.load(handle)
	except (OSError, ValueError):
		logger.exception("knowledge base unavailable path=%s", target)
		return []
	entries: List[KnowledgeEntry] = []
	for item in raw if isinstance(raw, list) else []:
		if not isinstance(item, dict) or not item.get("summary"):
			continue
		entries.append(
			KnowledgeEntry(
				slug=str(item.get("slug", "")),
				title=str(item.get("title", "")),
				summary=str(item["summary"]),
				keywords=[str(word).lower() for word in item.get("keywords", [])],
			)
		)
	return entries


def _score(entry: KnowledgeEntry, lowered: str) -> int:
	score = sum(1 for word in entry.keywords if word in lowered)
	if entry.title and entry.title.lower() in lowered:
		score += 2
	return score


def search(query: str, limit: int = 2, entries: Sequence[KnowledgeEntry] | None = None) -> List[KnowledgeEntry]:
	lowered = " ".join((query or "").lower().split())
	if not lowered:
		return []
	pool = load_entries() if entries is None else list(entries)
	scored = [(_score(entry, lowered), index, entry) for index, entry in enumerate(pool)]
	ranked = sorted((row for row in scored if row[0] > 0), key=lambda row: (-row[0], row[1]))
	return [entry for _score_value, _index, entry in ranked[:limit]]


def format_context(entries: Sequence[KnowledgeEntry]) -> str:
	return "\n\n".join(f"{entry.title}: {entry.summary}" for entry in entries)
