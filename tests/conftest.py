"""Pytest configuration and fixtures.

Every test gets its own in-memory SQLite database. HTTP tests run against
app.main:app with the database session, the current user and the language
model replaced through FastAPI dependency overrides.
"""

import os

# Must be set before app.core.config is imported
os.environ.setdefault("RATE_LIMIT_ENABLED", "0")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.pop("LLM_API_KEY", None)
os.environ.pop("GEMINI_API_KEY", None)
os.environ.pop("OPENAI_API_KEY", None)

from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.database.base import Base
from app.core.database.engine import get_db
from app.features.ai_commands.classifier import IntentClassifier
from app.features.ai_commands.dependencies import get_language_model
from app.features.ai_commands.llm import LanguageModelClient
from app.features.permissions.repository import RbacRepository
from app.features.users.dependencies import get_current_user
from app.features.users.models import User
from app.main import app


class ScriptedLanguageModel(LanguageModelClient):
    """Returns queued replies in order; raises queued exceptions; fails when empty."""

    def __init__(self, *replies: Any) -> None:
        self.replies = list(replies)
        self.prompts: list[str] = []
        self.closed = False

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.replies:
            raise ConnectionError("language model unreachable")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    def get_model_info(self) -> dict[str, Any]:
        return {"provider": "scripted"}

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def scripted_model() -> type[ScriptedLanguageModel]:
    """Factory for scripted language model clients."""
    return ScriptedLanguageModel


@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    await engine.dispose()


@pytest.fixture
async def db_session(session_factory) -> AsyncSession:
    async with session_factory() as session:
        yield session


@pytest.fixture
def repository(db_session: AsyncSession) -> RbacRepository:
    return RbacRepository(db_session)


@pytest.fixture
def offline_classifier() -> IntentClassifier:
    """Classifier with no language model: always uses the fallback parser."""
    return IntentClassifier(None)


@pytest.fixture
async def seeded(repository: RbacRepository) -> RbacRepository:
    """Store with roles admin and content_editor and two permissions."""
    await repository.create_role("admin")
    await repository.create_role("content_editor")
    await repository.create_permission("can_view_dashboard", "View the dashboard")
    await repository.create_permission("edit_posts", "Edit blog posts")
    return repository


@pytest.fixture
async def operator(db_session: AsyncSession) -> User:
    user = User(appwrite_id="appwrite-operator", email="operator@example.com", name="Operator")
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
def language_model_override() -> dict[str, LanguageModelClient | None]:
    """Tests put a client under "client" to change what the route uses."""
    return {"client": None}


@pytest.fixture
async def client(session_factory, operator: User, language_model_override) -> AsyncClient:
    """Async HTTP client against the FastAPI app (ASGI), authenticated as ``operator``."""

    async def _get_db():
        async with session_factory() as session:
            yield session
            await session.commit()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_current_user] = lambda: operator
    app.dependency_overrides[get_language_model] = lambda: language_model_override["client"]

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
