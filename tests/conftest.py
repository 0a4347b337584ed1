import os
import tempfile
import uuid

# Settings are read at import time, so the environment comes first.
_TMP_DIR = tempfile.mkdtemp(prefix="modulehub-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["UPLOADS_DIR"] = os.path.join(_TMP_DIR, "uploads")
os.environ["CLEANUP_ENABLED"] = "false"
os.environ["RETAKE_POLICY"] = "overwrite"

import httpx
import pytest

from modulehub.auth.jwt import create_access_token
from modulehub.database import AsyncSessionLocal, engine, init_models, drop_models
from modulehub.main import app
from modulehub.models import User, UserRole, Module, Enrollment


@pytest.fixture
async def database():
    await init_models()
    yield
    await drop_models()
    await engine.dispose()


@pytest.fixture
async def session(database):
    async with AsyncSessionLocal() as db:
        yield db


@pytest.fixture
async def client(database):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session):
    async def _make_user(role=UserRole.STUDENT, username=None, level=None, approved=True):
        user = User(
            role=role,
            name=f"{role.value} user",
            username=username or f"{role.value}-{uuid.uuid4().hex[:8]}",
            password_hash="not-a-real-hash",
            is_approved=approved,
            level=level,
        )
        session.add(user)
        await session.commit()
        return user
    return _make_user


@pytest.fixture
def auth_headers():
    def _auth_headers(user):
        token = create_access_token({"user_id": str(user.id), "role": user.role.value})
        return {"Authorization": f"Bearer {token}"}
    return _auth_headers


@pytest.fixture
def make_module(session, make_user):
    async def _make_module(teacher=None, level="lmd1", title="Algorithms"):
        admin = await make_user(UserRole.ADMIN)
        module = Module(
            title=title,
            description="First year algorithms",
            academic_year="2025-2026",
            level=level,
            semester=1,
            teacher_id=teacher.id if teacher else None,
            created_by=admin.id,
        )
        session.add(module)
        await session.commit()
        return module
    return _make_module


@pytest.fixture
def enroll(session):
    async def _enroll(student, module):
        session.add(Enrollment(student_id=student.id, module_id=module.id))
        await session.commit()
    return _enroll


@pytest.fixture
async def teacher(make_user):
    return await make_user(UserRole.TEACHER)


@pytest.fixture
async def student(make_user):
    return await make_user(UserRole.STUDENT, level="lmd1")


@pytest.fixture
async def module(make_module, teacher):
    return await make_module(teacher)
