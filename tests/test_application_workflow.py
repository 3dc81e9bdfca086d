"""Unit tests for the workflow service with a mocked database handle."""

from datetime import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from fastapi import HTTPException
from pymongo.errors import DuplicateKeyError

from smarttutors.services import application_workflow
from smarttutors.services.application_workflow import create_application, update_application
from smarttutors.utils.auth import ANONYMOUS, AuthContext


class TestUpdateApplication:

    @pytest.fixture
    def app_id(self):
        return ObjectId()

    @pytest.fixture
    def tutor_doc(self):
        return {"_id": ObjectId(), "name": "Rahim", "email": "rahim@example.com", "phone": "01712345678"}

    @pytest.fixture
    def tuition_doc(self):
        return {"_id": ObjectId(), "code": "ST150", "class_name": "Class 8", "subjects": ["Math"]}

    @pytest.fixture
    def mock_db(self, app_id, tutor_doc, tuition_doc):
        current = {
            "_id": app_id,
            "status": "pending",
            "tutor_id": str(tutor_doc["_id"]),
            "tuition_id": str(tuition_doc["_id"]),
            "confirmed_at": None,
        }
        db = MagicMock()
        db.applications.find_one = AsyncMock(return_value=current)
        db.applications.find_one_and_update = AsyncMock(
            side_effect=lambda query, update, **kwargs: {**current, **update["$set"]}
        )
        db.tutors.find_one = AsyncMock(return_value=tutor_doc)
        db.tuitions.find_one = AsyncMock(return_value=tuition_doc)
        return db

    @pytest.fixture
    def notify_mock(self, monkeypatch):
        mock = AsyncMock()
        monkeypatch.setattr(application_workflow, "notify_status_change", mock)
        return mock

    @pytest.mark.asyncio
    async def test_status_change_notifies_tutor(self, mock_db, app_id, notify_mock):
        application, tutor, tuition, email_sent = await update_application(
            mock_db, str(app_id), {"status": "selected-for-demo", "guardian_feedback": "Come on Friday"}
        )

        assert email_sent is True
        assert application["status"] == "selected-for-demo"
        assert isinstance(application["confirmed_at"], datetime)
        notify_mock.assert_awaited_once()
        args = notify_mock.await_args.args
        assert args[4] == "pending"
        assert args[5] == "selected-for-demo"
        assert args[6] == "Come on Friday"

    @pytest.mark.asyncio
    async def test_feedback_used_when_no_guardian_feedback(self, mock_db, app_id, notify_mock):
        await update_application(mock_db, str(app_id), {"status": "rejected", "feedback": "Too far"})
        assert notify_mock.await_args.args[6] == "Too far"

    @pytest.mark.asyncio
    async def test_notification_failure_does_not_fail_update(self, mock_db, app_id, notify_mock):
        notify_mock.side_effect = RuntimeError("outbox unavailable")

        application, _, _, email_sent = await update_application(mock_db, str(app_id), {"status": "rejected"})

        assert application["status"] == "rejected"
        assert email_sent is True

    @pytest.mark.asyncio
    async def test_no_email_means_no_attempt(self, mock_db, app_id, tutor_doc, notify_mock):
        tutor_doc["email"] = ""

        _, _, _, email_sent = await update_application(mock_db, str(app_id), {"status": "rejected"})

        assert email_sent is False
        notify_mock.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_auxiliary_only_update_does_not_notify(self, mock_db, app_id, notify_mock):
        _, _, _, email_sent = await update_application(mock_db, str(app_id), {"notes": "follow up"})

        assert email_sent is False
        notify_mock.assert_not_awaited()
        update = mock_db.applications.find_one_and_update.await_args.args[1]["$set"]
        assert update["notes"] == "follow up"
        assert "status" not in update

    @pytest.mark.asyncio
    async def test_disallowed_transition_is_conflict(self, mock_db, app_id, notify_mock):
        mock_db.applications.find_one.return_value["status"] = "completed"

        with pytest.raises(HTTPException) as exc:
            await update_application(mock_db, str(app_id), {"status": "pending"})

        assert exc.value.status_code == 409
        mock_db.applications.find_one_and_update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_status_write_is_conditional_on_read_status(self, mock_db, app_id, notify_mock):
        await update_application(mock_db, str(app_id), {"status": "selected-for-demo"})

        query = mock_db.applications.find_one_and_update.await_args.args[0]
        assert query == {"_id": app_id, "status": "pending", "confirmed_at": None}

    @pytest.mark.asyncio
    async def test_auxiliary_write_is_not_conditional(self, mock_db, app_id, notify_mock):
        await update_application(mock_db, str(app_id), {"notes": "call back"})

        query = mock_db.applications.find_one_and_update.await_args.args[0]
        assert query == {"_id": app_id}

    @pytest.mark.asyncio
    async def test_concurrent_status_change_is_conflict(self, mock_db, app_id, notify_mock):
        # Another admin moved the record after it was read
        mock_db.applications.find_one_and_update.side_effect = None
        mock_db.applications.find_one_and_update.return_value = None

        with pytest.raises(HTTPException) as exc:
            await update_application(mock_db, str(app_id), {"status": "rejected"})

        assert exc.value.status_code == 409
        notify_mock.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_deleted_before_write_is_not_found(self, mock_db, app_id, notify_mock):
        current = mock_db.applications.find_one.return_value
        mock_db.applications.find_one = AsyncMock(side_effect=[current, None])
        mock_db.applications.find_one_and_update.side_effect = None
        mock_db.applications.find_one_and_update.return_value = None

        with pytest.raises(HTTPException) as exc:
            await update_application(mock_db, str(app_id), {"status": "rejected"})

        assert exc.value.status_code == 404

    @pytest.mark.asyncio
    async def test_missing_application(self, mock_db, app_id):
        mock_db.applications.find_one.return_value = None

        with pytest.raises(HTTPException) as exc:
            await update_application(mock_db, str(app_id), {"status": "rejected"})

        assert exc.value.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_id(self, mock_db):
        with pytest.raises(HTTPException) as exc:
            await update_application(mock_db, "not-an-id", {"status": "rejected"})

        assert exc.value.status_code == 400
        mock_db.applications.find_one.assert_not_awaited()


class TestCreateApplication:

    @pytest.fixture
    def tuition_doc(self):
        return {"_id": ObjectId(), "code": "ST150", "status": "open"}

    @pytest.fixture
    def mock_db(self, tuition_doc):
        db = MagicMock()
        db.tuitions.find_one = AsyncMock(return_value=tuition_doc)
        db.tuitions.update_one = AsyncMock()
        db.tutors.find_one = AsyncMock(return_value={"_id": ObjectId(), "name": "Rahim", "phone": "01712345678"})
        db.applications.find_one = AsyncMock(return_value=None)
        db.applications.insert_one = AsyncMock(return_value=SimpleNamespace(inserted_id=ObjectId()))
        return db

    def payload(self, tuition_doc, **fields):
        data = {
            "tuition_id": str(tuition_doc["_id"]),
            "name": None,
            "phone": None,
            "email": None,
            "experience": None,
            "message": None,
            "agreed_to_terms": False,
            "confirmation_text": None,
        }
        data.update(fields)
        return SimpleNamespace(**data)

    @pytest.mark.asyncio
    async def test_closed_tuition_persists_nothing(self, mock_db, tuition_doc):
        tuition_doc["status"] = "booked"

        with pytest.raises(HTTPException) as exc:
            await create_application(mock_db, self.payload(tuition_doc, name="Jane", phone="017"), ANONYMOUS)

        assert exc.value.status_code == 400
        mock_db.applications.insert_one.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unique_index_violation_reported_as_duplicate(self, mock_db, tuition_doc):
        mock_db.applications.insert_one.side_effect = DuplicateKeyError("E11000 duplicate key")
        auth = AuthContext(subject="01712345678", role="tutor", tutor_id=str(ObjectId()))

        with pytest.raises(HTTPException) as exc:
            await create_application(mock_db, self.payload(tuition_doc, agreed_to_terms=True), auth)

        assert exc.value.status_code == 400
        assert "already applied" in exc.value.detail
        mock_db.tuitions.update_one.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_guest_reference_pushed_onto_tuition(self, mock_db, tuition_doc):
        document, tutor, _ = await create_application(
            mock_db, self.payload(tuition_doc, name="Jane", phone="01711111111"), ANONYMOUS
        )

        assert tutor is None
        assert document["guest_name"] == "Jane"
        push = mock_db.tuitions.update_one.await_args.args[1]["$push"]["applications"]
        assert push["tutor_id"].startswith("guest_")
