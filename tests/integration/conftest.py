"""Integration-test fixtures.

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool and Redis pool (both created at import time)
remain valid across the entire test session.
"""

import uuid
from collections.abc import Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.fp_common.enums import UserRole
from src.fp_gateway.auth.jwt_handler import create_access_token
from src.main import app


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client; keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers() -> Callable[..., dict[str, str]]:
    """Bearer headers for a fresh user id (tokens are minted, not issued by login)."""

    def _headers(role: UserRole = UserRole.USER, user_id: str | None = None) -> dict[str, str]:
        user_id = user_id or f"{role.value}_{uuid.uuid4().hex[:8]}"
        return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}

    return _headers
