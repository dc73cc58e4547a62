import os

# Settings are read at import time by the database module
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only-min-32-chars")
os.environ.setdefault("MISSION_REQUIRES_APPROVAL", "true")
os.environ.setdefault("RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("RATE_LIMIT_BACKEND", "memory")

import pytest  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, SQLModel  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import app.models  # noqa: E402, F401
from app.core.password import get_password_hash  # noqa: E402
from app.core.rate_limit import InMemoryRateLimitStore, get_rate_limit_store  # noqa: E402
from app.core.roles import Principal  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.database.database import build_engine, get_session  # noqa: E402
from app.main import app as fastapi_app  # noqa: E402
from app.models.enums import FeedPrivacyOverride, MissionStatus, Space, UserRole  # noqa: E402
from app.models.mission import Mission, MissionCreate  # noqa: E402
from app.models.submission import Submission, SubmissionCreate  # noqa: E402
from app.models.user import User, UserCreate  # noqa: E402
from app.services import mission as mission_service  # noqa: E402
from app.services import submission as submission_service  # noqa: E402
from app.services import user as user_service  # noqa: E402
from app.services.storage import StorageService, get_storage_service  # noqa: E402

PASSWORD = "Password123"


@pytest.fixture(name="engine")
def engine_fixture():
    """In-memory SQLite shared by every connection of the test (foreign keys on)."""
    engine = build_engine("sqlite://", poolclass=StaticPool)
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="storage")
def storage_fixture() -> StorageService:
    """Storage service whose MinIO client signs paths without a server."""
    client = MagicMock()
    client.get_presigned_url.side_effect = (
        lambda method, bucket, path, expires: f"https://storage.test/{bucket}/{path}?sig=1"
    )
    return StorageService(client, default_bucket="proofs", default_ttl_seconds=60)


@pytest.fixture(name="rate_limit_store")
def rate_limit_store_fixture() -> InMemoryRateLimitStore:
    return InMemoryRateLimitStore()


@pytest.fixture(name="client")
def client_fixture(session: Session, storage, rate_limit_store):
    """
    Test client bound to the test session.

    The lifespan is not entered, so neither the module engine nor telemetry is touched.
    """
    fastapi_app.dependency_overrides[get_session] = lambda: session
    fastapi_app.dependency_overrides[get_storage_service] = lambda: storage
    fastapi_app.dependency_overrides[get_rate_limit_store] = lambda: rate_limit_store
    yield TestClient(fastapi_app)
    fastapi_app.dependency_overrides.clear()


def _create_user(
    session: Session, username: str, role: UserRole = UserRole.MISSIONARY
) -> User:
    if role == UserRole.ADMIN:
        user = User(
            username=username,
            email=f"{username}@example.com",
            hashed_password=get_password_hash(PASSWORD),
            role=UserRole.ADMIN,
        )
        session.add(user)
    else:
        user = user_service.create_user(
            session,
            UserCreate(
                username=username,
                email=f"{username}@example.com",
                password=PASSWORD,
                role=role,
            ),
        )
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture(name="missionary")
def missionary_fixture(session: Session) -> User:
    return _create_user(session, "missionary")


@pytest.fixture(name="other_missionary")
def other_missionary_fixture(session: Session) -> User:
    return _create_user(session, "other_missionary")


@pytest.fixture(name="advertiser")
def advertiser_fixture(session: Session) -> User:
    return _create_user(session, "advertiser", UserRole.ADVERTISER)


@pytest.fixture(name="admin")
def admin_fixture(session: Session) -> User:
    return _create_user(session, "admin", UserRole.ADMIN)


@pytest.fixture(name="user_factory")
def user_factory_fixture(session: Session):
    """Create extra users on demand: ``user_factory("bob", UserRole.ADVERTISER)``."""

    def create(username: str, role: UserRole = UserRole.MISSIONARY) -> User:
        return _create_user(session, username, role)

    return create


@pytest.fixture(name="headers_for")
def headers_for_fixture():
    """Bearer headers carrying an access token for a user."""

    def build(user: User) -> dict[str, str]:
        token = create_access_token({"sub": user.username})
        return {"Authorization": f"Bearer {token}"}

    return build


@pytest.fixture(name="mission_factory")
def mission_factory_fixture(session: Session):
    """
    Create an OPEN mission owned by `owner`.

    Advertiser missions are approved straight away; extra keyword
    arguments override the MissionCreate payload.
    """

    def create(owner: User, **overrides) -> Mission:
        data = {
            "title": "Review our app",
            "description": "Install the app and leave an honest review",
            "criteria": "Screenshot of the published review",
            "space": Space.PRO,
            "slots_max": 2,
            "reward_escrow_content": "Voucher code: THANKS-2026",
        }
        data.update(overrides)
        mission = mission_service.create_mission(
            session, Principal.of(owner), MissionCreate(**data)
        )
        if mission.status == MissionStatus.PENDING:
            mission_service.approve_mission(session, mission.id_mission)
        session.commit()
        session.refresh(mission)
        return mission

    return create


@pytest.fixture(name="open_mission")
def open_mission_fixture(mission_factory, advertiser: User) -> Mission:
    return mission_factory(advertiser)


@pytest.fixture(name="submit")
def submit_fixture(session: Session):
    """Submit proof for a mission as `user` and commit: ``submit(user, mission)``."""

    def create(user: User, mission: Mission, **overrides) -> Submission:
        data = {
            "id_mission": mission.id_mission,
            "proof_url": "https://store.example.com/reviews/42",
            "comments": "Done, five stars",
        }
        data.update(overrides)
        submission = submission_service.create_submission(
            session, Principal.of(user), SubmissionCreate(**data)
        )
        session.commit()
        session.refresh(submission)
        return submission

    return create


@pytest.fixture(name="accepted_submission")
def accepted_submission_fixture(
    session: Session, open_mission: Mission, missionary: User, advertiser: User, submit
) -> Submission:
    """
    A submission of `missionary` accepted on `open_mission`.

    It opts out of the feed, so no post exists until a test writes one.
    """
    submission = submit(
        missionary, open_mission, feed_privacy_override=FeedPrivacyOverride.NEVER
    )
    submission_service.accept_submission(
        session, Principal.of(advertiser), submission.id_submission
    )
    session.commit()
    session.refresh(submission)
    return submission
