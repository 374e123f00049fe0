"""Shared fixtures: isolated app per test, in-memory database, fake clock and player."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.identity import IdentityProvider
from core.room_registry import RoomRegistry
from database import Base, get_db, init_db
from main import create_app


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakePlayer:
    """In-memory PlaybackEngine that records every call.

    ``on_change`` mimics the play / pause / seeked notifications a real
    player fires after a programmatic change.
    """

    def __init__(self, on_change=None):
        self.video_url = ""
        self.current_time = 0.0
        self.paused = True
        self.calls = []
        self.on_change = on_change

    def _notify(self, name):
        if self.on_change is not None:
            self.on_change(name)

    def load(self, url):
        self.calls.append(("load", url))
        self.video_url = url
        self.current_time = 0.0
        self.paused = True

    def seek(self, position):
        self.calls.append(("seek", position))
        self.current_time = position
        self._notify("seeked")

    def play(self):
        self.calls.append(("play",))
        self.paused = False
        self._notify("play")

    def pause(self):
        self.calls.append(("pause",))
        self.paused = True
        self._notify("pause")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def player():
    return FakePlayer()


@pytest.fixture
def make_player():
    return FakePlayer


@pytest.fixture
def make_clock():
    return FakeClock


@pytest.fixture
def registry():
    return RoomRegistry()


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def app(db_engine, registry):
    application = create_app(registry=registry, identity=IdentityProvider())
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    application.dependency_overrides[get_db] = override_get_db
    return application


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def login(client):
    """Register (if needed) and log in, returning auth headers."""

    def _login(username: str = "alice", password: str = "secret") -> dict:
        client.post("/api/register", json={"username": username, "password": password})
        resp = client.post("/api/login", json={"username": username, "password": password})
        assert resp.status_code == 200, resp.text
        return {"Authorization": f"Bearer {resp.json()['token']}"}

    return _login


@pytest.fixture
def auth_headers(login):
    return login("alice")
