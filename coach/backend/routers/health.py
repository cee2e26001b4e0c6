from __future__ import annotations

from fastapi import APIRouter, Request

from coach.backend.response import success_response
from coach.backend.schemas import ApiEnvelope
from coach.backend.services import health_service


router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("/summary", response_model=ApiEnvelope)
def get_summary(request: Request):
	return success_response(
		request=request,
		data=health_service.get_summary(),
	)
