from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from coach.backend.orchestrator.types import FeaturedListing


logger = logging.getLogger("coach.marketplace")

_DEFAULT_FEATURED_PATH = Path(__file__).resolve().parents[1] / "data" / "featured.json"
_DEFAULT_LIMIT = 3


def featured_path() -> Path:
	raw = os.getenv("COACH_FEATURED_PATH", "").strip()
	return Path(raw) if raw else _DEFAULT_FEATURED_PATH


def load_catalog(path: Path | None = None) -> List[Dict[str, Any]]:
	with open(path or featured_path(), "r", encoding="utf-8") as handle:
		raw = json.load(handle)
	if not isinstance(raw, list):
		raise ValueError("Featured catalog must be a JSON list.")
	return [item for item in raw if isinstance(item, dict)]


def _location_parts(location: str) -> List[str]:
	return [part.strip().lower() for part in location.split(",") if part.strip()]


def _location_rank(listing_location: str, location: Optional[str]) -> int:
	if not location:
		return 0
	wanted = _location_parts(location)
	have = _location_parts(listing_location)
	if wanted and have and wanted[0] == have[0]:
		return 2
	if len(wanted) > 1 and len(have) > 1 and wanted[-1] == have[-1]:
		return 1
	return 0


def find_featured_matching(
	query: str,
	location: Optional[str] = None,
	limit: int = _DEFAULT_LIMIT,
) -> List[FeaturedListing]:
	lowered = " ".join((query or "").lower().split())
	if not lowered:
		return []
	matches = []
	for index, item in enumerate(load_catalog()):
		keywords = [str(word).lower() for word in item.get("keywords", [])]
		if not any(word in lowered for word in keywords):
			continue
		listing = FeaturedListing(
			title=str(item.get("title", "")),
			org=str(item.get("org", "")),
			location=str(item.get("location", "")),
		)
		matches.append((_location_rank(listing.location, location), index, listing))
	matches.sort(key=lambda row: (-row[0], row[1]))
	result = [listing for _rank, _index, listing in matches[:limit]]
	logger.info("featured matches=%d location=%s", len(result), bool(location))
	return result
