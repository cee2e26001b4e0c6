from __future__ import annotations

from typing import Callable, Iterable, Iterator, List, Tuple

from coach.backend.orchestrator.types import FinalPayload


FinalizeFn = Callable[[str], FinalPayload]


def relay_tokens(tokens: Iterable[str], on_final: FinalizeFn) -> Iterator[Tuple[str, object]]:
	"""Forward tokens as they arrive, then run `on_final` once on the full text.

	If `tokens` raises, the error propagates and `on_final` never runs. If the
	consumer stops early (client disconnect), the generator is closed before
	the end of the stream and enrichment is abandoned.
	"""
	collected: List[str] = []
	for token in tokens:
		if not token:
			continue
		collected.append(token)
		yield ("delta", token)
	yield ("final", on_final("".join(collected)))
