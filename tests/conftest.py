import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOCAL_STORE_PATH", "")
os.environ.setdefault("LOG_DIR", "")

import uuid
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import main
from learnhub.core.constants import RoleEnum, StorageBackendEnum
from learnhub.core.database import Base
from learnhub.core.security import get_password_hash
from learnhub.models.user import AuthAccount, User
from learnhub.schemas.course import CourseCreate, LessonCreate
from learnhub.schemas.user import SessionContext, UserProfile
from learnhub.services.session import identity_registry
from learnhub.storage.negotiation import StorageSelector, build_relational
from learnhub.utils import deps
from tests.helpers.common import memory_backends, TEST_PASSWORD


@pytest.fixture(scope="function")
def database_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()

@pytest.fixture(scope="function")
def session_factory(database_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=database_engine)

@pytest.fixture(scope="function")
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.rollback()
        db.close()

@pytest.fixture
def storage(session_factory):
    return StorageSelector(
        build_relational(session_factory),
        fallback_factory=memory_backends,
        configured=StorageBackendEnum.RELATIONAL,
    )

@pytest.fixture
def local_storage():
    return StorageSelector(memory_backends(), configured=StorageBackendEnum.LOCAL)

@pytest.fixture(params=["relational", "local"])
def any_storage(request, storage, local_storage):
    """Runs a test once per storage backend."""
    return storage if request.param == "relational" else local_storage

@pytest.fixture(scope="function")
def client(session_factory, storage):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    identity_registry.clear()
    main.app.dependency_overrides[deps.get_db] = override_get_db
    main.app.state.storage = storage
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()
    identity_registry.clear()

@pytest.fixture
def account_factory(db_session):
    def _create(email=None, name="Test User", role=RoleEnum.MEMBER, with_profile=True) -> AuthAccount:
        email = email or f"user-{uuid.uuid4().hex[:8]}@test.com"
        account = AuthAccount(
            email=email,
            hashed_password=get_password_hash(TEST_PASSWORD),
            role=role,
            user_metadata={"name": name, "avatar": None},
        )
        db_session.add(account)
        db_session.flush()
        if with_profile:
            db_session.add(User(id=account.id, email=email, name=name))
        db_session.commit()
        db_session.refresh(account)
        return account
    return _create

@pytest.fixture
def login(client):
    def _login(email: str, password: str = TEST_PASSWORD) -> str:
        response = client.post("/auth/login", json={"email": email, "password": password})
        body = response.json()
        token = body.get("data", {}).get("token", {}).get("access_token")
        assert token, f"Login failed or token missing: {body}"
        return token
    return _login

@pytest.fixture
def user_headers(account_factory, login):
    account = account_factory()
    return {"Authorization": f"Bearer {login(account.email)}"}

@pytest.fixture
def admin_headers(account_factory, login):
    account = account_factory(name="Test Admin", role=RoleEnum.ADMIN)
    return {"Authorization": f"Bearer {login(account.email)}"}

@pytest.fixture
def make_session():
    """Builds a SessionContext directly, without going through the API."""
    def _session(user_id=None, role=RoleEnum.MEMBER) -> SessionContext:
        user_id = user_id or str(uuid.uuid4())
        return SessionContext(current_user=UserProfile(id=user_id, email=f"{user_id[:8]}@test.com", role=role))
    return _session

@pytest.fixture
def course_factory():
    def _create(storage, lessons: int = 3, **fields):
        data = {
            "title": f"Course {uuid.uuid4().hex[:6]}",
            "description": "A test course",
            "instructor": "Jane Smith",
            "category": "Programming",
            "difficulty": "beginner",
        }
        data.update(fields)
        course = storage.catalog.create_course(CourseCreate(**data))
        for i in range(lessons):
            storage.catalog.create_lesson(course.id, LessonCreate(title=f"Lesson {i + 1}", order_index=i))
        return storage.catalog.get_course(course.id)
    return _create
