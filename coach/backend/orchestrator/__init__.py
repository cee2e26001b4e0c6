from coach.backend.orchestrator.orchestrator import ChatOrchestrator, ChatOrchestratorHooks
from coach.backend.orchestrator.types import (
	ChatReply,
	ChatStream,
	FeaturedListing,
	FinalPayload,
	LocationRequiredError,
	Message,
	PreambleResult,
	TurnRequest,
)

__all__ = [
	"ChatOrchestrator",
	"ChatOrchestratorHooks",
	"ChatReply",
	"ChatStream",
	"FeaturedListing",
	"FinalPayload",
	"LocationRequiredError",
	"Message",
	"PreambleResult",
	"TurnRequest",
]
