import logging
import time

from fastapi import HTTPException
from pymongo.errors import DuplicateKeyError

from smarttutors.models.tuition import Tuition

logger = logging.getLogger(__name__)

CODE_PREFIX = "ST"
FIRST_CODE_NUMBER = 150
LAST_CODE_NUMBER = 2000


def normalize_code(code: str) -> str:
    code = code.strip()
    if not code.startswith(CODE_PREFIX):
        code = f"{CODE_PREFIX}{code}"
    return code


async def next_tuition_code(db) -> str:
    """Lowest free STnnn code, or a timestamp code once the range is used up."""
    documents = await db.tuitions.find({}, {"code": 1}).to_list(None)
    taken = {doc.get("code") for doc in documents}

    for number in range(FIRST_CODE_NUMBER, LAST_CODE_NUMBER + 1):
        candidate = f"{CODE_PREFIX}{number}"
        if candidate not in taken:
            return candidate

    return f"{CODE_PREFIX}{int(time.time() * 1000)}"


def tuition_to_response(tuition: dict) -> dict:
    data = {key: value for key, value in tuition.items() if key not in ("_id", "applications")}
    data["id"] = str(tuition["_id"])
    data["application_count"] = len(tuition.get("applications") or [])
    return data


async def create_tuition(db, payload) -> dict:
    code = normalize_code(payload.code) if payload.code else await next_tuition_code(db)

    if await db.tuitions.find_one({"code": code}):
        raise HTTPException(status_code=400, detail=f"Tuition code {code} already exists")

    tuition = Tuition(code=code, **payload.model_dump(exclude={"code"}))
    document = tuition.to_mongo()

    try:
        result = await db.tuitions.insert_one(document)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail=f"Tuition code {code} already exists")

    document["_id"] = result.inserted_id
    logger.info("Tuition %s created", code)
    return document
