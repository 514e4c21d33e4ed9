import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from database import Base, get_db
from main import app
from models import GroupRole, PlatformRole
from core.group_manager import GroupManager
from core.permissions import Actor
from core.table_manager import TableManager

OWNER = Actor("owner-1")
EDITOR = Actor("editor-1")
VIEWER = Actor("viewer-1")
OUTSIDER = Actor("outsider-1")
ADMIN = Actor("admin-1", PlatformRole.ADMIN)


def headers(actor: Actor) -> dict:
    return {"X-User-Id": actor.user_id, "X-User-Role": actor.platform_role.value}


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def group(db):
    """Group owned by OWNER, with EDITOR and VIEWER as members"""
    group = GroupManager.create_group(db, OWNER, "Friday Night", "Weekly home game")
    GroupManager.add_member(db, OWNER, group.id, EDITOR.user_id, GroupRole.EDITOR)
    GroupManager.add_member(db, OWNER, group.id, VIEWER.user_id, GroupRole.VIEWER)
    return group


@pytest.fixture
def other_group(db):
    """Second group; EDITOR is an owner here, OWNER is not a member"""
    return GroupManager.create_group(db, EDITOR, "Office League")


@pytest.fixture
def table(db, group):
    """Open table with blinds 1/2 and minimum buy-in 4"""
    return TableManager.create_table(db, EDITOR, group.id, "Table 1", 1, 2, 4)
