# ========================================
# smarttutors/routes/admin.py
# ========================================

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from smarttutors.database import get_db
from smarttutors.schemas.admin import AdminLogin, OutboxRetryResponse
from smarttutors.schemas.tutor import TokenResponse
from smarttutors.services.notification import deliver_pending
from smarttutors.utils.auth import AuthContext, ROLE_ADMIN, create_access_token, require_admin
from smarttutors.utils.security import verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


# ✅ 1. ADMIN LOGIN
@router.post("/auth/login", response_model=TokenResponse)
async def admin_login(credentials: AdminLogin):
    """Login with username or email and get a JWT access token."""

    db = get_db()

    username = credentials.username.strip()
    admin = await db.admins.find_one({"$or": [{"username": username}, {"email": username.lower()}]})

    if not admin or not verify_password(credentials.password, admin["password"]):
        logger.warning("Failed admin login for %s", username)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    access_token = create_access_token(data={
        "sub": admin["username"],
        "role": ROLE_ADMIN,
        "name": admin.get("name"),
    })
    return {"access_token": access_token, "token_type": "bearer"}


# ✅ 2. RE-DELIVER QUEUED NOTIFICATIONS
@router.post("/notifications/retry", response_model=OutboxRetryResponse)
async def retry_notifications(
    limit: int = Query(50, ge=1, le=500),
    auth: AuthContext = Depends(require_admin),
):
    """Re-send outbox notifications that are still pending or previously failed."""

    db = get_db()
    result = await deliver_pending(db, limit=limit)
    logger.info("Outbox retry by %s: %s", auth.subject, result)
    return result
