"""
Shared test fixtures

Every test that touches the database gets a fresh in-memory MongoDB
(mongomock-motor) installed as the active database.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from classhub.config import database
from classhub.models.program import ProgramCreate
from classhub.models.student import StudentCreate
from classhub.models.user import UserCreate, UserRole
from classhub.services.program_service import program_service
from classhub.services.student_service import student_service
from classhub.services.user_service import user_service
from classhub.utils.security import security

PASSWORD = "correct-horse-battery"


@pytest_asyncio.fixture
async def db():
    """Fresh in-memory database per test"""
    client = AsyncMongoMockClient()
    test_db = client["classhub_test"]
    database.set_database(test_db)
    yield test_db
    database.set_database(None)


async def _create_user(email: str, name: str, role: UserRole):
    return await user_service.create_user(UserCreate(
        email=email,
        name=name,
        password=PASSWORD,
        role=role
    ))


@pytest_asyncio.fixture
async def admin(db):
    return await _create_user("admin@classmeasures.co.ke", "Grace Admin", UserRole.ADMIN)


@pytest_asyncio.fixture
async def tutor(db):
    return await _create_user("tutor@classmeasures.co.ke", "Jane Wanjiku", UserRole.TUTOR)


@pytest_asyncio.fixture
async def other_tutor(db):
    return await _create_user("tutor2@classmeasures.co.ke", "Peter Kamau", UserRole.TUTOR)


@pytest_asyncio.fixture
async def parent(db):
    return await _create_user("parent@classmeasures.co.ke", "Mary Otieno", UserRole.PARENT)


@pytest.fixture
def auth_headers():
    """Build a bearer header for a user document"""
    def _headers(user):
        tokens = security.create_token_pair(user)
        return {"Authorization": f"Bearer {tokens['access_token']}"}
    return _headers


@pytest.fixture
def make_student(db, admin):
    """Factory: register a student, optionally under a parent"""
    async def _make(name: str, age: int = 9, parent_id: str = None):
        return await student_service.create_student(
            StudentCreate(name=name, age=age, parent_id=parent_id),
            created_by=str(admin["_id"])
        )
    return _make


@pytest.fixture
def make_program(db, admin, tutor):
    """Factory: create a program led by the tutor fixture"""
    async def _make(name: str = "Junior Coders", capacity: int = 3, price: float = 4500):
        return await program_service.create_program(
            ProgramCreate(
                name=name,
                category="Coding",
                description="Scratch and block-based programming",
                age_group="6-10",
                tutor_id=str(tutor["_id"]),
                schedule={"day": "Saturday", "start_time": "09:00", "end_time": "10:30"},
                capacity=capacity,
                price=price
            ),
            created_by=str(admin["_id"])
        )
    return _make


@pytest_asyncio.fixture
async def client(db):
    """HTTP client bound to the app; lifespan is not run, the mock db is already installed"""
    from classhub.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client


@pytest.fixture
def password():
    """Password shared by every seeded user"""
    return PASSWORD
