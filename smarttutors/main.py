# ========================================
# smarttutors/main.py
# ========================================

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from smarttutors.config import ALLOWED_ORIGINS, LOG_LEVEL
from smarttutors.database import connect_to_mongo, close_mongo_connection
from smarttutors.utils.auth import AuthMiddleware

# ===========================
# IMPORT ALL ROUTERS
# ===========================

from smarttutors.routes.application import router as application_router
from smarttutors.routes.tuition import router as tuition_router
from smarttutors.routes.tutor import router as tutor_router
from smarttutors.routes.admin import router as admin_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# ===========================
# CREATE FASTAPI APP
# ===========================

app = FastAPI(
    title="Smart Tutors API",
    description="Tuition applications: guest and tutor submissions, admin status workflow and notifications",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# ===========================
# MIDDLEWARE
# ===========================

app.add_middleware(AuthMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ===========================
# ERROR RESPONSES: {"error": "..."}
# ===========================

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return JSONResponse(
        status_code=400,
        content={"error": f"{field}: {message}" if field else message},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})

# ===========================
# DATABASE EVENTS
# ===========================

@app.on_event("startup")
async def start_db():
    """Connect to MongoDB on startup"""
    await connect_to_mongo()

@app.on_event("shutdown")
async def stop_db():
    """Close MongoDB connection on shutdown"""
    await close_mongo_connection()

# ===========================
# REGISTER ROUTERS
# ===========================

app.include_router(application_router, tags=["Applications"])
app.include_router(tuition_router, tags=["Tuitions"])
app.include_router(tutor_router, tags=["Tutors"])
app.include_router(admin_router, tags=["Admin"])

# ===========================
# ROOT ENDPOINTS
# ===========================

@app.get("/")
async def root():
    """API root endpoint with feature summary"""
    return {
        "status": "Smart Tutors API Running",
        "version": "1.0.0",
        "documentation": "/docs",
        "endpoints": {
            "public": [
                "/applications (POST, guest or tutor)",
                "/applications?tuitionCode=",
                "/tuitions",
                "/tuitions/public/{code}",
                "/tutors/register",
                "/tutors/login",
            ],
            "tutor": [
                "/tutors/me",
                "/applications (GET own)",
                "/applications/{id} (GET/DELETE own)",
            ],
            "admin": [
                "/admin/auth/login",
                "/applications/{id} (PATCH/PUT/DELETE)",
                "/tuitions (POST)",
                "/tuitions/{id}/status",
                "/admin/notifications/retry",
            ],
        },
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": "1.0.0"
    }
