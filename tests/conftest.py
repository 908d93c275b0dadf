"""Shared fixtures: in-memory SQLite, test settings, a stubbed timetable API."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime

import pytest
import requests
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_db, get_settings
from app.core.config import Settings
from app.db.models import building, raw_data, room, schedule  # noqa: F401
from app.db.models.building import Building
from app.db.models.enums import SlotStatus
from app.db.models.room import Room
from app.db.models.schedule import Schedule
from app.db.session import Base
from app.main import app

from tests.factories import API_URL, FakeTimetableApi


@pytest.fixture
def config():
    return Settings(_env_file=None, DATABASE_URL="sqlite://", TIMETABLE_API_URL=API_URL)


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def fake_api(monkeypatch):
    api = FakeTimetableApi()
    monkeypatch.setattr(requests, "get", api)
    return api


@pytest.fixture
def client(db, config):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_settings] = lambda: config
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_room(db):
    """Create (or reuse) a building and add one room with the given slots."""

    def _make(code, full_code, slots):
        b = db.query(Building).filter_by(code=code).first()
        if not b:
            b = Building(code=code)
            db.add(b)
            db.flush()
        _, floor, number = full_code.split(".")
        r = Room(building_id=b.id, full_code=full_code, floor=floor, number=number)
        db.add(r)
        db.flush()
        for status, start, end in slots:
            busy = status == SlotStatus.BUSY
            db.add(Schedule(
                room_id=r.id,
                start_time=datetime.fromisoformat(start),
                end_time=datetime.fromisoformat(end),
                status=status,
                title="Lecture" if busy else "Free Room",
                external_id=f"ext-{full_code}-{start}" if busy else None,
            ))
        db.commit()
        return b

    return _make
