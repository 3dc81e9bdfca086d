# ========================================
# smarttutors/routes/tuition.py
# ========================================

import re

from fastapi import APIRouter, Depends, HTTPException, Query
from pymongo import ReturnDocument
from typing import List, Optional

from smarttutors.database import get_db
from smarttutors.schemas.tuition import (
    TuitionCreate,
    TuitionStatusUpdate,
    TuitionPublicResponse,
    TuitionResponse,
)
from smarttutors.services.application_workflow import parse_object_id
from smarttutors.services.tuition import create_tuition, tuition_to_response
from smarttutors.utils.auth import AuthContext, require_admin

router = APIRouter(prefix="/tuitions", tags=["Tuitions"])


# ===========================
# PUBLIC ENDPOINTS
# ===========================

# ✅ 1. LIST TUITIONS (Public)
@router.get("", response_model=List[TuitionPublicResponse])
async def list_tuitions(
    status: Optional[str] = Query(None, description="Filter by status: open, available, demo running, booked"),
    location: Optional[str] = Query(None, description="Filter by location"),
    limit: int = Query(100, le=500),
):
    """List tuitions, newest first."""

    db = get_db()

    query = {}
    if status:
        query["status"] = status
    if location:
        query["location"] = {"$regex": re.escape(location), "$options": "i"}

    tuitions = await db.tuitions.find(query).sort("created_at", -1).to_list(limit)
    return [tuition_to_response(t) for t in tuitions]


# ✅ 2. GET TUITION BY PUBLIC CODE
@router.get("/public/{code}", response_model=TuitionPublicResponse)
async def get_public_tuition(code: str):
    db = get_db()

    tuition = await db.tuitions.find_one({"code": code})
    if not tuition:
        raise HTTPException(status_code=404, detail="Tuition not found")

    return tuition_to_response(tuition)


# ===========================
# ADMIN ENDPOINTS
# ===========================

# ✅ 3. POST A TUITION (Admin)
@router.post("", response_model=TuitionResponse)
async def post_tuition(payload: TuitionCreate, auth: AuthContext = Depends(require_admin)):
    """Create a tuition posting. A code is generated when none is given."""

    db = get_db()
    tuition = await create_tuition(db, payload)
    return tuition_to_response(tuition)


# ✅ 4. CHANGE TUITION STATUS (Admin)
@router.patch("/{tuition_id}/status", response_model=TuitionResponse)
async def update_tuition_status(
    tuition_id: str,
    payload: TuitionStatusUpdate,
    auth: AuthContext = Depends(require_admin),
):
    db = get_db()

    tuition = await db.tuitions.find_one_and_update(
        {"_id": parse_object_id(tuition_id, "tuition")},
        {"$set": {"status": payload.status.value}},
        return_document=ReturnDocument.AFTER,
    )
    if not tuition:
        raise HTTPException(status_code=404, detail="Tuition not found")

    return tuition_to_response(tuition)
