import os
from pathlib import Path

# Cheap hashing and a fixed secret for tests; must be set before app imports
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("LOG_FORMAT", "console")

import pytest
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

# --- Alembic Imports ---
from alembic.config import Config
from alembic import command

# Import app and DB dependency function first
from main import app, get_db

# Import database components needed for setup
from database import Base, build_engine
import models  # noqa: F401  # register tables on Base.metadata

ROOT = Path(__file__).resolve().parent
TEST_DATABASE_URL = "sqlite:///./job-board-test.db"
API = "/api"

test_engine = build_engine(TEST_DATABASE_URL)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


def _remove_db_files(db_path: str) -> None:
    for suffix in ("", "-wal", "-shm"):
        path = db_path + suffix
        if os.path.exists(path):
            try:
                os.unlink(path)
            except OSError as e:
                print(f"Error removing test database file {path}: {e}")


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create the test database from models and stamp with Alembic head."""
    db_path = TEST_DATABASE_URL.split("///")[-1]
    _remove_db_files(db_path)

    Base.metadata.create_all(bind=test_engine)

    alembic_cfg = Config(str(ROOT / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(ROOT / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", TEST_DATABASE_URL)
    command.stamp(alembic_cfg, "head")

    yield  # Tests run here

    test_engine.dispose()
    _remove_db_files(db_path)


@pytest.fixture(autouse=True)
def clean_tables(setup_test_database):
    """Every test starts from empty tables."""
    yield
    with test_engine.begin() as connection:
        for table in reversed(Base.metadata.sorted_tables):
            connection.execute(table.delete())


@pytest.fixture(scope="function")
def db_session(setup_test_database):
    """Yields a SQLAlchemy session directly from the test factory."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def override_get_db():
    """Point the app's get_db dependency at the test database."""

    def _override_get_db():
        db = TestSessionLocal()
        try:
            yield db
        finally:
            db.close()

    original = app.dependency_overrides.get(get_db)
    app.dependency_overrides[get_db] = _override_get_db

    yield

    if original:
        app.dependency_overrides[get_db] = original
    else:
        del app.dependency_overrides[get_db]


@pytest.fixture(scope="function")
def test_client(override_get_db):
    """Provides a test client configured with our test database session."""
    return TestClient(app)


# --- API helpers --- #
@pytest.fixture
def register_user(test_client):
    """Register a user through the API, log in, and return (user, auth headers)."""

    def _register(name: str, role: str, email: str = None, password: str = "s3cret-pass", **extra):
        email = email or f"{name.lower()}@example.com"
        response = test_client.post(
            f"{API}/users/register",
            json={"name": name, "email": email, "password": password, "role": role, **extra},
        )
        assert response.status_code == 201, response.text
        login = test_client.post(f"{API}/users/login", json={"email": email, "password": password})
        assert login.status_code == 200, login.text
        headers = {"Authorization": f"Bearer {login.json()['token']}"}
        return response.json()["user"], headers

    return _register


@pytest.fixture
def create_company(test_client):
    def _create(headers, name: str = "Acme", **fields):
        payload = {
            "name": name,
            "description": f"{name} builds things",
            "location": "Abuja",
            "website": f"https://{name.lower()}.example.com",
            **fields,
        }
        response = test_client.post(f"{API}/companies/create", json=payload, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()["company"]

    return _create


@pytest.fixture
def create_job(test_client):
    def _create(headers, title: str = "Backend Engineer", **fields):
        payload = {
            "title": title,
            "description": "Build and run APIs",
            "location": "Remote",
            "jobType": "REMOTE",
            "employmentType": "FULL_TIME",
            "category": "Engineering",
            **fields,
        }
        response = test_client.post(f"{API}/jobs/create-job", json=payload, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()["job"]

    return _create


@pytest.fixture
def employer(register_user, create_company):
    """Employer "Alice" owning active company "Acme"."""
    user, headers = register_user("Alice", "employer")
    company = create_company(headers, "Acme")
    return {"user": user, "headers": headers, "company": company}


@pytest.fixture
def applicant(register_user):
    user, headers = register_user("Bob", "applicant", resumeUrl="https://cv.example.com/bob", bio="Python dev")
    return {"user": user, "headers": headers}
