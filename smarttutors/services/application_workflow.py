"""
Application lifecycle: submission, status transitions and response shaping.

Routes stay thin; everything that touches the applications collection for the
workflow goes through here.
"""

import logging
import time
from datetime import datetime
from typing import Optional

from bson import ObjectId
from fastapi import HTTPException
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from smarttutors.models.application import (
    Application,
    ApplicationStatus,
    InvalidTransitionError,
    MILESTONE_FIELDS,
    check_transition,
    parse_status,
)
from smarttutors.models.tuition import OPEN_STATUSES
from smarttutors.services.notification import notify_status_change
from smarttutors.utils.auth import AuthContext

logger = logging.getLogger(__name__)

# Fields a PATCH/PUT may overwrite regardless of status
AUXILIARY_FIELDS = (
    "feedback",
    "guardian_feedback",
    "demo_date",
    "demo_completed",
    "demo_feedback",
    "demo_instructions",
    "media_fee",
    "notes",
    "guardian_contact_sent",
    "confirmation_text",
)

TUTOR_SUMMARY_FIELDS = (
    "tutor_id", "name", "phone", "email", "university", "university_short_form",
    "department", "experience", "version", "group", "gender",
)

TUITION_SUMMARY_FIELDS = ("code", "class_name", "version", "subjects", "location", "salary", "status")


def parse_object_id(value: str, label: str) -> ObjectId:
    if not ObjectId.is_valid(value):
        raise HTTPException(status_code=400, detail=f"Invalid {label} ID")
    return ObjectId(value)


# ===========================
# UPDATE BUILDERS
# ===========================

def build_status_update(current: dict, new_status: Optional[str], now: datetime) -> dict:
    """
    $set fields for moving `current` to `new_status`.

    Re-applying the current status yields no changes. Milestone timestamps
    are only written while still unset.
    """
    if new_status is None:
        return {}

    target = parse_status(new_status)
    old_status = current.get("status") or ApplicationStatus.PENDING.value
    if target == parse_status(old_status):
        return {}

    check_transition(old_status, target)

    update = {"status": target.value}
    milestone = MILESTONE_FIELDS.get(target)
    if milestone and current.get(milestone) is None:
        update[milestone] = now
    return update


def build_auxiliary_update(changes: dict, now: datetime) -> dict:
    update = {name: changes[name] for name in AUXILIARY_FIELDS if name in changes}
    if update.get("guardian_contact_sent"):
        update["guardian_contact_sent_at"] = now
    return update


# ===========================
# RESPONSE SHAPING
# ===========================

def tutor_to_summary(tutor: Optional[dict]) -> Optional[dict]:
    if not tutor:
        return None
    summary = {field: tutor.get(field) for field in TUTOR_SUMMARY_FIELDS}
    summary["id"] = str(tutor["_id"])
    return summary


def tuition_to_summary(tuition: Optional[dict]) -> Optional[dict]:
    if not tuition:
        return None
    summary = {field: tuition.get(field) for field in TUITION_SUMMARY_FIELDS}
    summary["subjects"] = summary["subjects"] or []
    summary["id"] = str(tuition["_id"])
    return summary


def application_to_response(application: dict, tutor: Optional[dict] = None,
                            tuition: Optional[dict] = None) -> dict:
    data = {key: value for key, value in application.items() if key != "_id"}
    data["id"] = str(application["_id"])
    data["tutor"] = tutor_to_summary(tutor)
    data["tuition"] = tuition_to_summary(tuition)
    return data


async def load_related(db, application: dict):
    """Fetch the tutor (None for guests) and tuition an application points at."""
    tutor = None
    tutor_id = application.get("tutor_id")
    if tutor_id and ObjectId.is_valid(tutor_id):
        tutor = await db.tutors.find_one({"_id": ObjectId(tutor_id)}, {"password": 0})

    tuition = None
    tuition_id = application.get("tuition_id")
    if tuition_id and ObjectId.is_valid(tuition_id):
        tuition = await db.tuitions.find_one({"_id": ObjectId(tuition_id)})

    return tutor, tuition


# ===========================
# OPERATIONS
# ===========================

def build_notes(application: Application, tutor: Optional[dict], payload) -> str:
    if tutor:
        email = f" - Email: {tutor['email']}" if tutor.get("email") else ""
        return (
            f"Application from registered tutor: {tutor['name']} ({tutor['phone']}){email}"
            f" - Agreed to terms: {payload.confirmation_text or 'Yes'}"
        )

    parts = [f"Guest application from {application.guest_name} ({application.guest_phone})"]
    if application.guest_email:
        parts.append(f"Email: {application.guest_email}")
    if application.guest_experience:
        parts.append(f"Experience: {application.guest_experience}")
    if application.guest_message:
        parts.append(f"Message: {application.guest_message}")
    return " - ".join(parts)


async def create_application(db, payload, auth: AuthContext):
    """
    Submit an application for a tuition.

    Registered tutors must agree to the terms and may apply once per
    tuition; guests must leave a name and phone number.

    Returns:
        (application document, tutor document or None, tuition document)
    """
    registered = auth.is_tutor

    if not registered and (not payload.name or not payload.phone):
        raise HTTPException(status_code=400, detail="Name and phone are required for guest applications")

    if registered and not payload.agreed_to_terms:
        raise HTTPException(status_code=400, detail="You must agree to the terms and conditions")

    tuition_oid = parse_object_id(payload.tuition_id, "tuition")
    tuition = await db.tuitions.find_one({"_id": tuition_oid})
    if not tuition:
        raise HTTPException(status_code=404, detail="Tuition not found")

    if tuition.get("status") not in OPEN_STATUSES:
        raise HTTPException(status_code=400, detail="This tuition is no longer available")

    tutor = None
    if registered:
        tutor = await db.tutors.find_one({"_id": parse_object_id(auth.tutor_id, "tutor")}, {"password": 0})
        if not tutor:
            raise HTTPException(status_code=404, detail="Tutor profile not found")

        existing = await db.applications.find_one({"tutor_id": auth.tutor_id, "tuition_id": payload.tuition_id})
        if existing:
            raise HTTPException(status_code=400, detail="You have already applied for this tuition")

        application = Application(
            tuition_id=payload.tuition_id,
            tutor_id=auth.tutor_id,
            agreed_to_terms=True,
            confirmation_text=payload.confirmation_text,
        )
    else:
        application = Application(
            tuition_id=payload.tuition_id,
            guest_name=payload.name,
            guest_phone=payload.phone,
            guest_email=payload.email,
            guest_experience=payload.experience,
            guest_message=payload.message,
        )

    application.notes = build_notes(application, tutor, payload)
    document = application.to_mongo()

    try:
        result = await db.applications.insert_one(document)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="You have already applied for this tuition")
    document["_id"] = result.inserted_id

    # Lightweight reference on the tuition itself
    await db.tuitions.update_one(
        {"_id": tuition_oid},
        {"$push": {"applications": {
            "tutor_id": auth.tutor_id if registered else f"guest_{int(time.time() * 1000)}",
            "applied_date": document["applied_at"],
        }}},
    )

    logger.info(
        "Application %s submitted for tuition %s by %s",
        document["_id"], tuition.get("code"), auth.tutor_id if registered else "guest",
    )
    return document, tutor, tuition


async def update_application(db, application_id: str, changes: dict):
    """
    Apply a status change and/or auxiliary field updates.

    `changes` holds only the fields the client actually sent. A status
    change that differs from the stored one is checked against the
    transition table and, when the tutor has an email, notified.

    Returns:
        (application document, tutor, tuition, email_sent)
    """
    oid = parse_object_id(application_id, "application")

    current = await db.applications.find_one({"_id": oid})
    if not current:
        raise HTTPException(status_code=404, detail="Application not found")

    old_status = current.get("status")
    now = datetime.utcnow()

    try:
        update = build_status_update(current, changes.get("status"), now)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))

    status_changed = "status" in update

    # The transition was checked against `current`; only write if it still holds
    query = {"_id": oid}
    if status_changed:
        query["status"] = old_status
        for field in MILESTONE_FIELDS.values():
            if field in update:
                query[field] = None

    update.update(build_auxiliary_update(changes, now))
    update["updated_at"] = now

    application = await db.applications.find_one_and_update(
        query,
        {"$set": update},
        return_document=ReturnDocument.AFTER,
    )
    if application is None:
        if not await db.applications.find_one({"_id": oid}):
            raise HTTPException(status_code=404, detail="Application not found")
        logger.warning("Application %s changed while moving %s -> %s", application_id, old_status, update["status"])
        raise HTTPException(
            status_code=409,
            detail="Application was updated by another request, reload and try again",
        )

    tutor, tuition = await load_related(db, application)

    email_sent = False
    if status_changed:
        logger.info("Application %s status %s -> %s", application_id, old_status, update["status"])

        if tutor and tutor.get("email"):
            email_sent = True
            message = changes.get("guardian_feedback") or changes.get("feedback")
            try:
                await notify_status_change(db, application, tutor, tuition, old_status, update["status"], message)
            except Exception:
                logger.exception("Failed to queue status notification for application %s", application_id)

    return application, tutor, tuition, email_sent


async def delete_application(db, application_id: str, auth: AuthContext):
    """Hard delete. Admins may remove any application, tutors only their own."""
    oid = parse_object_id(application_id, "application")

    application = await db.applications.find_one({"_id": oid})
    if not application:
        raise HTTPException(status_code=404, detail="Application not found")

    if not (auth.is_admin or (auth.is_tutor and application.get("tutor_id") == auth.tutor_id)):
        raise HTTPException(status_code=403, detail="Not authorized")

    await db.applications.delete_one({"_id": oid})
    logger.info("Application %s deleted by %s", application_id, auth.subject)
