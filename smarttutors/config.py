import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root, falling back to the working directory
env_path = Path(__file__).resolve().parent.parent / ".env"
if env_path.exists():
    load_dotenv(dotenv_path=env_path)
else:
    load_dotenv()

# Database
MONGO_URI = os.getenv("MONGO_URI")
DATABASE_NAME = os.getenv("DATABASE_NAME", "smarttutors")

# Auth
SECRET_KEY = os.getenv("SECRET_KEY", "super_secret_random_key_CHANGE_THIS")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24))

# CORS
ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "").split(",") if o.strip()]

# Public site, used for dashboard links in emails
SITE_URL = os.getenv("SITE_URL", "http://localhost:3000").rstrip("/")

# Email (SMTP)
MAIL_USERNAME = os.getenv("MAIL_USERNAME")
MAIL_PASSWORD = os.getenv("MAIL_PASSWORD")
MAIL_FROM_NAME = os.getenv("MAIL_FROM_NAME", "Smart Tutors")
MAIL_PROVIDER = os.getenv("MAIL_PROVIDER", "auto").lower()
SMTP_HOST = os.getenv("SMTP_HOST", "smtp.example.com")
SMTP_PORT = int(os.getenv("SMTP_PORT", 587))

# SMS (BulkSMS BD gateway)
SMS_ENABLED = os.getenv("SMS_ENABLED", "false").lower() in ("1", "true", "yes")
BULKSMS_API_KEY = os.getenv("BULKSMS_API_KEY", "")
BULKSMS_SENDER_ID = os.getenv("BULKSMS_SENDER_ID", "")
BULKSMS_BASE_URL = os.getenv("BULKSMS_BASE_URL", "http://bulksmsbd.net/api").rstrip("/")

# Notification outbox
NOTIFICATION_MAX_ATTEMPTS = int(os.getenv("NOTIFICATION_MAX_ATTEMPTS", 5))
# An entry left in "sending" longer than this is assumed abandoned and retried
NOTIFICATION_CLAIM_LEASE_SECONDS = int(os.getenv("NOTIFICATION_CLAIM_LEASE_SECONDS", 300))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
