"""
FastAPI dependencies wiring the command pipeline for one request.
"""
from typing import Annotated, Optional
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.ai_commands.classifier import IntentClassifier
from app.features.ai_commands.llm import LanguageModelClient
from app.features.ai_commands.orchestrator import BatchOrchestrator
from app.features.permissions.repository import RbacRepository
from app.features.users.dependencies import get_current_user
from app.features.users.models import User


def get_language_model(request: Request) -> Optional[LanguageModelClient]:
    """Client built at startup and kept on app.state; None means fallback-only."""
    return getattr(request.app.state, "language_model", None)


async def get_orchestrator(
    db: Annotated[AsyncSession, Depends(get_db)],
    client: Annotated[Optional[LanguageModelClient], Depends(get_language_model)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> BatchOrchestrator:
    repository = RbacRepository(db)
    return BatchOrchestrator(repository, IntentClassifier(client), actor_id=current_user.id)
