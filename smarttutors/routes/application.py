# ========================================
# smarttutors/routes/application.py
# ========================================

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional

from smarttutors.database import get_db
from smarttutors.schemas.application import (
    ApplicationCreate,
    ApplicationPatch,
    ApplicationAdminUpdate,
    ApplicationEnvelope,
    ApplicationListResponse,
    ApplicationUpdateResponse,
)
from smarttutors.services.application_workflow import (
    application_to_response,
    create_application,
    delete_application,
    load_related,
    parse_object_id,
    update_application,
)
from smarttutors.utils.auth import AuthContext, get_auth, require_admin, require_user

router = APIRouter(tags=["Applications"])

MAX_LIST_SIZE = 500


def redact_contact(data: dict) -> dict:
    """Public listings never expose phone numbers or emails."""
    data["guest_phone"] = None
    data["guest_email"] = None
    data["notes"] = None
    if data.get("tutor"):
        data["tutor"]["phone"] = None
        data["tutor"]["email"] = None
    return data


async def enrich(db, applications, public=False):
    result = []
    for app in applications:
        tutor, tuition = await load_related(db, app)
        data = application_to_response(app, tutor, tuition)
        result.append(redact_contact(data) if public else data)
    return result


# ✅ 1. SUBMIT APPLICATION (Guest or Tutor)
@router.post("/applications", response_model=ApplicationEnvelope)
async def submit_application(payload: ApplicationCreate, auth: AuthContext = Depends(get_auth)):
    """Apply for a tuition. Guests leave name and phone; tutors must accept the terms."""

    db = get_db()
    application, tutor, tuition = await create_application(db, payload, auth)

    return {
        "success": True,
        "message": "Application submitted successfully",
        "application": application_to_response(application, tutor, tuition),
    }


# ✅ 2. LIST APPLICATIONS
@router.get("/applications", response_model=ApplicationListResponse)
async def list_applications(
    tuition_code: Optional[str] = Query(None, alias="tuitionCode", description="Public view of one tuition's applicants"),
    status: Optional[str] = Query(None, description="Filter by status"),
    auth: AuthContext = Depends(get_auth),
):
    """
    Admins see every application, tutors see their own.
    Anyone may list the applicants of a tuition by its public code.
    """

    db = get_db()

    if tuition_code:
        tuition = await db.tuitions.find_one({"code": tuition_code})
        if not tuition:
            raise HTTPException(status_code=404, detail="Tuition not found")

        applications = await db.applications.find(
            {"tuition_id": str(tuition["_id"])}
        ).sort("applied_at", -1).to_list(MAX_LIST_SIZE)

        return {"success": True, "applications": await enrich(db, applications, public=True)}

    if not auth.is_authenticated:
        raise HTTPException(status_code=401, detail="Unauthorized")

    if auth.is_admin:
        query = {}
    elif auth.is_tutor:
        query = {"tutor_id": auth.tutor_id}
    else:
        raise HTTPException(status_code=403, detail="Access denied")

    if status:
        query["status"] = status

    applications = await db.applications.find(query).sort("applied_at", -1).to_list(MAX_LIST_SIZE)
    return {"success": True, "applications": await enrich(db, applications)}


# ✅ 3. GET APPLICATION DETAILS
@router.get("/applications/{application_id}", response_model=ApplicationEnvelope)
async def get_application(application_id: str, auth: AuthContext = Depends(require_user)):
    """Fetch one application with tutor and tuition summaries."""

    db = get_db()

    application = await db.applications.find_one({"_id": parse_object_id(application_id, "application")})
    if not application:
        raise HTTPException(status_code=404, detail="Application not found")

    if not (auth.is_admin or (auth.is_tutor and application.get("tutor_id") == auth.tutor_id)):
        raise HTTPException(status_code=403, detail="Not authorized")

    tutor, tuition = await load_related(db, application)
    return {"success": True, "application": application_to_response(application, tutor, tuition)}


# ✅ 4. GENERAL UPDATE (Admin)
@router.patch("/applications/{application_id}", response_model=ApplicationUpdateResponse)
async def patch_application(
    application_id: str,
    payload: ApplicationPatch,
    auth: AuthContext = Depends(require_admin),
):
    """Update status and/or any supplementary field. Only fields sent are written."""

    db = get_db()
    changes = payload.model_dump(exclude_unset=True)

    application, tutor, tuition, email_sent = await update_application(db, application_id, changes)

    return {
        "success": True,
        "message": "Application updated successfully",
        "application": application_to_response(application, tutor, tuition),
        "email_sent": email_sent,
    }


# ✅ 5. STATUS UPDATE (Admin)
@router.put("/applications/{application_id}", response_model=ApplicationUpdateResponse)
async def put_application_status(
    application_id: str,
    payload: ApplicationAdminUpdate,
    auth: AuthContext = Depends(require_admin),
):
    """Move an application to a new status. The status field is required."""

    db = get_db()
    changes = payload.model_dump(exclude_unset=True)

    application, tutor, tuition, email_sent = await update_application(db, application_id, changes)

    return {
        "success": True,
        "message": f"Application {payload.status} successfully",
        "application": application_to_response(application, tutor, tuition),
        "email_sent": email_sent,
    }


# ✅ 6. DELETE / WITHDRAW APPLICATION
@router.delete("/applications/{application_id}")
async def remove_application(application_id: str, auth: AuthContext = Depends(require_user)):
    """Withdraw (tutor, own applications) or delete (admin) an application outright."""

    db = get_db()
    await delete_application(db, application_id, auth)

    return {"message": "Application deleted successfully"}
