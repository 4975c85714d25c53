"""
Root pytest configuration for backend tests.

Provides:
- Shared fixtures (services, tokens, app, client)
- Seeded accounts (admin, editor, writer) and an auth header helper
"""

import asyncio
import sys
from pathlib import Path

# Add backend directory to Python path so imports like
# `from api.procedures import ...` and `from services.stores import ...` work
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

import pytest

TEST_PASSWORD = "correct horse battery staple"


@pytest.fixture
def password():
    """Password shared by every seeded account."""
    return TEST_PASSWORD


@pytest.fixture
def tokens():
    from services.auth_tokens import TokenService
    return TokenService(secret="test-secret", expiration_hours=1)


@pytest.fixture
def services(tokens):
    """In-memory service bundle seeded with one account per role."""
    from services.container import Services

    bundle = Services(tokens=tokens)

    async def seed():
        for role in ("admin", "editor", "writer"):
            await bundle.users.add(f"{role}@example.com", TEST_PASSWORD, role, display_name=role.title())

    asyncio.run(seed())
    return bundle


@pytest.fixture
def users(services):
    """{role: UserRecord} for the seeded accounts."""
    async def load():
        return {
            role: await services.users.find_by_email(f"{role}@example.com")
            for role in ("admin", "editor", "writer")
        }
    return asyncio.run(load())


@pytest.fixture
def auth_header(tokens, users):
    """auth_header('admin') -> {'Authorization': 'Bearer ...'}"""
    def build(role):
        user = users[role]
        return {"Authorization": f"Bearer {tokens.issue(user.id, user.email)}"}
    return build


@pytest.fixture
def app(services):
    """Create test Flask application."""
    from app import create_app

    app = create_app(
        config_overrides={"TESTING": True, "CONTRACT_MODE": "strict", "DATABASE_URL": None},
        services=services,
    )
    return app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()
