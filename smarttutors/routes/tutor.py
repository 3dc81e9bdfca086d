# ========================================
# smarttutors/routes/tutor.py
# ========================================

import logging

from fastapi import APIRouter, Depends, HTTPException
from pymongo.errors import DuplicateKeyError

from smarttutors.database import get_db
from smarttutors.models.tutor import Tutor
from smarttutors.schemas.tutor import TutorRegister, TutorLogin, TutorResponse, TokenResponse
from smarttutors.services.application_workflow import parse_object_id
from smarttutors.utils.auth import AuthContext, ROLE_TUTOR, create_access_token, require_tutor
from smarttutors.utils.security import get_password_hash, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tutors", tags=["Tutors"])


def tutor_to_response(tutor: dict) -> dict:
    data = {key: value for key, value in tutor.items() if key not in ("_id", "password")}
    data["id"] = str(tutor["_id"])
    return data


async def next_tutor_code(db) -> str:
    number = await db.tutors.count_documents({}) + 1
    while await db.tutors.find_one({"tutor_id": f"T{number:05d}"}):
        number += 1
    return f"T{number:05d}"


# ✅ 1. REGISTER
@router.post("/register", response_model=TutorResponse)
async def register_tutor(payload: TutorRegister):
    """Create a tutor account. Phone numbers (and emails, when given) are unique."""

    db = get_db()

    if await db.tutors.find_one({"phone": payload.phone}):
        raise HTTPException(status_code=400, detail="Phone number already registered")

    if payload.email and await db.tutors.find_one({"email": payload.email.lower()}):
        raise HTTPException(status_code=400, detail="Email already registered")

    data = payload.model_dump()
    data["password"] = get_password_hash(payload.password)
    if payload.email:
        data["email"] = payload.email.lower()
    tutor = Tutor(tutor_id=await next_tutor_code(db), **data)
    document = tutor.to_mongo()

    try:
        result = await db.tutors.insert_one(document)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="Tutor already registered")

    document["_id"] = result.inserted_id
    logger.info("Tutor %s registered", document["tutor_id"])
    return tutor_to_response(document)


# ✅ 2. LOGIN
@router.post("/login", response_model=TokenResponse)
async def login_tutor(credentials: TutorLogin):
    """Login with phone, email or tutor ID and get a JWT access token."""

    db = get_db()

    identifier = credentials.identifier.strip()
    tutor = await db.tutors.find_one({"$or": [
        {"phone": identifier},
        {"email": identifier.lower()},
        {"tutor_id": identifier},
    ]})

    if not tutor or not verify_password(credentials.password, tutor["password"]):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    access_token = create_access_token(data={
        "sub": tutor["phone"],
        "role": ROLE_TUTOR,
        "tutor_id": str(tutor["_id"]),
        "name": tutor["name"],
    })
    return {"access_token": access_token, "token_type": "bearer"}


# ✅ 3. GET MY PROFILE
@router.get("/me", response_model=TutorResponse)
async def get_my_profile(auth: AuthContext = Depends(require_tutor)):
    db = get_db()

    tutor = await db.tutors.find_one({"_id": parse_object_id(auth.tutor_id, "tutor")})
    if not tutor:
        raise HTTPException(status_code=404, detail="Tutor profile not found")

    return tutor_to_response(tutor)
