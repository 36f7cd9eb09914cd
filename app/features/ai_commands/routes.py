"""
AI command API route.

Accepts a free-form instruction and applies it to the RBAC store.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from app.core import config
from app.core.rate_limit import limiter
from app.features.ai_commands.dependencies import get_orchestrator
from app.features.ai_commands.exceptions import ErrorKind
from app.features.ai_commands.intents import BatchOutcome, CommandOutcome
from app.features.ai_commands.orchestrator import BatchOrchestrator
from app.features.ai_commands.schemas import AIBatchResponse, AICommandRequest, AICommandResponse
from app.utils import get_logger


log = get_logger(__name__)
router = APIRouter()


STATUS_BY_ERROR_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.LOW_CONFIDENCE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.ALREADY_IN_DESIRED_STATE: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.CLASSIFIER_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(outcome: CommandOutcome | BatchOutcome) -> int:
    if isinstance(outcome, BatchOutcome):
        if outcome.success:
            return status.HTTP_200_OK
        if outcome.succeeded:
            return status.HTTP_207_MULTI_STATUS
        return status.HTTP_400_BAD_REQUEST
    if outcome.success:
        return status.HTTP_200_OK
    return STATUS_BY_ERROR_KIND.get(outcome.error_kind, status.HTTP_400_BAD_REQUEST)


@router.post(
    "",
    responses={
        200: {"model": AICommandResponse, "description": "Command (or every command of a batch) succeeded"},
        207: {"model": AIBatchResponse, "description": "Some commands of a batch failed"},
    },
)
@limiter.limit(config.AI_COMMAND_RATE_LIMIT)
async def run_ai_command(
    request: Request,
    body: AICommandRequest,
    orchestrator: Annotated[BatchOrchestrator, Depends(get_orchestrator)],
) -> JSONResponse:
    """Interpret a natural-language RBAC command and execute it."""
    outcome = await orchestrator.run(body.command)
    status_code = status_for(outcome)
    if status_code >= 500:
        log.error(f"AI command {body.command!r} failed with {status_code}")
    return JSONResponse(status_code=status_code, content=outcome.to_response())
