"""
Application status notifications.

Every attempt is written to the notification_outbox collection first and
delivered right after, so a failed email or SMS stays on record and can be
re-delivered later with deliver_pending().
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from pymongo import ReturnDocument

from smarttutors import config
from smarttutors.utils.email import send_status_update_email
from smarttutors.utils.sms import render_status_update_sms, send_sms

logger = logging.getLogger(__name__)

CHANNEL_EMAIL = "email"
CHANNEL_SMS = "sms"

OUTBOX_PENDING = "pending"
OUTBOX_SENDING = "sending"
OUTBOX_SENT = "sent"
OUTBOX_FAILED = "failed"


def tuition_summary(tuition: Optional[dict]) -> dict:
    if not tuition:
        return {}
    return {
        "code": tuition.get("code"),
        "class_name": tuition.get("class_name"),
        "subjects": tuition.get("subjects") or [],
        "location": tuition.get("location"),
        "salary": tuition.get("salary"),
    }


def build_status_payload(application, tutor, tuition, old_status, new_status, message=None) -> dict:
    demo_date = application.get("demo_date")
    return {
        "tutor_email": tutor.get("email"),
        "tutor_name": tutor.get("name"),
        "tutor_phone": tutor.get("phone"),
        "tuition": tuition_summary(tuition),
        "old_status": old_status,
        "new_status": new_status,
        "message": message,
        "demo_date": demo_date.isoformat() if isinstance(demo_date, datetime) else demo_date,
    }


async def enqueue(db, application_id: str, channel: str, recipient: str, payload: dict,
                  status: str = OUTBOX_PENDING) -> dict:
    entry = {
        "application_id": application_id,
        "channel": channel,
        "recipient": recipient,
        "payload": payload,
        "status": status,
        "attempts": 0,
        "last_error": None,
        "created_at": datetime.utcnow(),
        "claimed_at": None,
        "sent_at": None,
    }
    result = await db.notification_outbox.insert_one(entry)
    entry["_id"] = result.inserted_id
    return entry


async def _send(entry: dict):
    payload = entry["payload"]
    if entry["channel"] == CHANNEL_EMAIL:
        sent = await send_status_update_email(payload)
        return sent, None if sent else "Email not sent"
    if entry["channel"] == CHANNEL_SMS:
        return await send_sms(entry["recipient"], render_status_update_sms(payload))
    return False, f"Unknown channel: {entry['channel']}"


async def deliver(db, entry: dict) -> bool:
    """Attempt one outbox entry and record the outcome. Never raises on delivery errors."""
    try:
        sent, error = await _send(entry)
    except Exception as e:
        logger.error("Failed to send %s notification to %s: %s", entry["channel"], entry["recipient"], e)
        sent, error = False, str(e)

    if sent:
        update = {"$set": {"status": OUTBOX_SENT, "sent_at": datetime.utcnow(), "last_error": None},
                  "$inc": {"attempts": 1}}
        logger.info("%s notification sent to %s for application %s",
                    entry["channel"], entry["recipient"], entry["application_id"])
    else:
        update = {"$set": {"status": OUTBOX_FAILED, "last_error": error}, "$inc": {"attempts": 1}}
        logger.warning("%s notification to %s for application %s not delivered: %s",
                       entry["channel"], entry["recipient"], entry["application_id"], error)

    await db.notification_outbox.update_one({"_id": entry["_id"]}, update)
    return sent


async def claim(db, entry: dict) -> Optional[dict]:
    """
    Mark an entry as being sent, unless someone else got to it first.

    The match on status, attempts and claimed_at makes this a compare-and-set:
    of two workers holding the same snapshot only one gets the document back.
    """
    return await db.notification_outbox.find_one_and_update(
        {
            "_id": entry["_id"],
            "status": entry["status"],
            "attempts": entry["attempts"],
            "claimed_at": entry.get("claimed_at"),
        },
        {"$set": {"status": OUTBOX_SENDING, "claimed_at": datetime.utcnow()}},
        return_document=ReturnDocument.AFTER,
    )


async def notify_status_change(db, application, tutor, tuition, old_status, new_status, message=None) -> List[dict]:
    """Queue and attempt the email (and, when enabled, SMS) for a status change."""
    application_id = str(application["_id"])
    payload = build_status_payload(application, tutor, tuition, old_status, new_status, message)

    entries = [await enqueue(db, application_id, CHANNEL_EMAIL, tutor["email"], payload)]
    if config.SMS_ENABLED and tutor.get("phone"):
        entries.append(await enqueue(db, application_id, CHANNEL_SMS, tutor["phone"], payload))

    for entry in entries:
        claimed = await claim(db, entry)
        if claimed is not None:
            await deliver(db, claimed)
    return entries


async def deliver_pending(db, limit: int = 50) -> dict:
    """
    Re-deliver outbox entries under the attempt limit that are pending,
    failed, or stuck in "sending" past the claim lease.
    """
    stale_before = datetime.utcnow() - timedelta(seconds=config.NOTIFICATION_CLAIM_LEASE_SECONDS)
    query = {
        "$or": [
            {"status": {"$in": [OUTBOX_PENDING, OUTBOX_FAILED]}},
            {"status": OUTBOX_SENDING, "claimed_at": {"$lt": stale_before}},
        ],
        "attempts": {"$lt": config.NOTIFICATION_MAX_ATTEMPTS},
    }
    entries = await db.notification_outbox.find(query).sort("created_at", 1).to_list(limit)

    processed = sent = 0
    for entry in entries:
        claimed = await claim(db, entry)
        if claimed is None:
            continue
        processed += 1
        if await deliver(db, claimed):
            sent += 1

    return {"processed": processed, "sent": sent, "failed": processed - sent}
