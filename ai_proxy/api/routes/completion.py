from fastapi import APIRouter, Depends, Request

from ai_proxy.core.auth import verify_api_key
from ai_proxy.core.rate_limit import enforce_rate_limit
from ai_proxy.schemas.completion import CompletionRequest, CompletionResponse
from ai_proxy.services.completion_service import CompletionService

router = APIRouter(tags=["Completion"])


def get_completion_service(request: Request) -> CompletionService:
    """Return the service owned by the running application."""
    return request.app.state.completion_service


@router.post(
    "/completion",
    response_model=CompletionResponse,
    dependencies=[Depends(enforce_rate_limit), Depends(verify_api_key)],
    responses={
        400: {"description": "Invalid systemPrompt or userMessage."},
        403: {"description": "Missing or invalid X-API-Key (when required)."},
        429: {"description": "Per-address rate limit exceeded; see Retry-After."},
        500: {"description": "Server configuration error."},
        502: {"description": "Upstream AI service failed or answered unexpectedly."},
        504: {"description": "Upstream AI service timed out."},
    },
)
async def create_completion(
    payload: CompletionRequest,
    service: CompletionService = Depends(get_completion_service),
) -> CompletionResponse:
    """Forward one prompt pair to the upstream AI service.

    The provider key, model and token budget never leave the server; the
    response contains only the reply text.

    Args:
        payload: ``systemPrompt`` and ``userMessage`` (each up to the
            configured length).
        service: Completion service from application state.

    Returns:
        CompletionResponse: ``{"text": ...}``.
    """
    return await service.complete(payload)
