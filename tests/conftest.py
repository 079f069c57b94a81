import os
import tempfile
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# ------------------------------------------------------------------
# FORCE TESTING MODE
# Must be set BEFORE importing leaveflow so settings and the engine
# pick up the throwaway SQLite database.
# ------------------------------------------------------------------
TEST_DB_PATH = os.path.join(tempfile.gettempdir(), "leaveflow_test.db")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{TEST_DB_PATH}"
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["SMTP_HOST"] = ""
os.environ["SUPER_ADMIN_EMAIL"] = ""

from leaveflow.main import app  # noqa: E402
from leaveflow.core.database import AsyncSessionLocal, drop_db, init_db  # noqa: E402
from leaveflow.core.security import create_access_token  # noqa: E402
from leaveflow.models.user import UserRole  # noqa: E402
from leaveflow.schemas.auth import Actor  # noqa: E402
from leaveflow.services.auth_service import create_user  # noqa: E402


@pytest_asyncio.fixture
async def database():
    """Fresh tables for every test."""
    await drop_db()
    await init_db()
    yield
    await drop_db()


@pytest_asyncio.fixture
async def db_session(database):
    async with AsyncSessionLocal() as session:
        yield session


@pytest_asyncio.fixture
async def client(database):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


@pytest_asyncio.fixture
async def users(db_session):
    """One account per role, keyed by role name."""
    student = await create_user(
        db_session, "Asha Patil", "asha@example.com", "studentpass", UserRole.Student,
        student_number="STU1001", course="Electrical Engineering", semester=3,
        department="Electrical",
    )
    other_student = await create_user(
        db_session, "Ravi Kumar", "ravi@example.com", "studentpass", UserRole.Student,
        student_number="STU1002", course="Civil Engineering", semester=5,
        department="Civil",
    )
    teacher = await create_user(
        db_session, "Prof. Meera Joshi", "meera@example.com", "teacherpass", UserRole.Teacher,
        employee_id="EMP201", department="Electrical",
    )
    training_officer = await create_user(
        db_session, "Mr. Sunil Rao", "sunil@example.com", "topass", UserRole.TO,
        employee_id="EMP301",
    )
    admin = await create_user(
        db_session, "Admin", "admin@example.com", "adminpass", UserRole.Admin,
    )
    return {
        "student": student,
        "other_student": other_student,
        "teacher": teacher,
        "to": training_officer,
        "admin": admin,
    }


@pytest_asyncio.fixture
async def actors(users):
    return {key: Actor.from_user(user) for key, user in users.items()}


@pytest_asyncio.fixture
async def headers(users):
    def auth_for(user):
        token = create_access_token(subject=str(user.id), data={"role": user.role.value})
        return {"Authorization": f"Bearer {token}"}

    return {key: auth_for(user) for key, user in users.items()}
