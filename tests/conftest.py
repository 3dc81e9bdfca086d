"""
Shared pytest fixtures.

The app runs against an in-memory Motor-compatible database and outbound
email is replaced with an AsyncMock, so no MongoDB or SMTP server is needed.
"""

from datetime import datetime
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from smarttutors import config, database
from smarttutors.main import app
from smarttutors.models.application import Application
from smarttutors.models.tuition import Tuition
from smarttutors.utils.auth import ROLE_ADMIN, ROLE_TUTOR, create_access_token
from smarttutors.utils.security import get_password_hash


@pytest.fixture
def db(monkeypatch):
    """Fresh in-memory database wired into smarttutors.database."""
    mock_db = AsyncMongoMockClient()["smarttutors_test"]
    monkeypatch.setattr(database, "db", mock_db)
    return mock_db


@pytest_asyncio.fixture
async def client(db):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture(autouse=True)
def sms_disabled(monkeypatch):
    monkeypatch.setattr(config, "SMS_ENABLED", False)


@pytest.fixture
def mail_mock(monkeypatch):
    """Replaces the status email sender; returns True (delivered) by default."""
    mock = AsyncMock(return_value=True)
    monkeypatch.setattr("smarttutors.services.notification.send_status_update_email", mock)
    return mock


@pytest.fixture
def admin_headers():
    token = create_access_token({"sub": "admin", "role": ROLE_ADMIN, "name": "Site Admin"})
    return {"Authorization": f"Bearer {token}"}


def tutor_headers_for(tutor):
    token = create_access_token({
        "sub": tutor["phone"],
        "role": ROLE_TUTOR,
        "tutor_id": str(tutor["_id"]),
        "name": tutor["name"],
    })
    return {"Authorization": f"Bearer {token}"}


async def insert_tutor(db, **overrides):
    document = {
        "tutor_id": "T00001",
        "name": "Rahim Uddin",
        "phone": "01712345678",
        "email": "rahim@example.com",
        "password": get_password_hash("secret123"),
        "university": "Bangladesh University of Engineering and Technology",
        "university_short_form": "BUET",
        "department": "CSE",
        "experience": "3 years",
        "created_at": datetime.utcnow(),
    }
    document.update(overrides)
    result = await db.tutors.insert_one(document)
    document["_id"] = result.inserted_id
    return document


async def insert_tuition(db, **overrides):
    fields = {
        "code": "ST150",
        "guardian_name": "Mrs. Karim",
        "guardian_number": "01811111111",
        "class_name": "Class 8",
        "subjects": ["Math", "Physics"],
        "salary": "6000",
        "location": "Dhanmondi, Dhaka",
    }
    fields.update(overrides)
    document = Tuition(**fields).to_mongo()
    result = await db.tuitions.insert_one(document)
    document["_id"] = result.inserted_id
    return document


async def insert_application(db, tuition, tutor=None, **overrides):
    if tutor is not None:
        application = Application(tuition_id=str(tuition["_id"]), tutor_id=str(tutor["_id"]), agreed_to_terms=True)
    else:
        application = Application(tuition_id=str(tuition["_id"]), guest_name="Guest", guest_phone="01900000000")
    document = application.to_mongo()
    document.update(overrides)
    result = await db.applications.insert_one(document)
    document["_id"] = result.inserted_id
    return document


@pytest_asyncio.fixture
async def tutor(db):
    return await insert_tutor(db)


@pytest.fixture
def tutor_headers(tutor):
    return tutor_headers_for(tutor)


@pytest_asyncio.fixture
async def tuition(db):
    return await insert_tuition(db)
