import os

from dotenv import load_dotenv

load_dotenv()


def _bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Database
MONGODB_URL = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
MONGODB_DB = os.getenv("MONGODB_DB", "netwin")
# Multi-document transactions need a replica set; standalone servers must turn this off
MONGODB_TRANSACTIONS = _bool("MONGODB_TRANSACTIONS", True)

# Tokens
SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))

# Email
SMTP_SERVER = os.getenv("SMTP_SERVER", "")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USERNAME = os.getenv("SMTP_USERNAME", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
EMAIL_FROM = os.getenv("EMAIL_FROM", "no-reply@netwin.gg")
EMAIL_SUBJECT_PASSWORD_RESET = os.getenv("EMAIL_SUBJECT_PASSWORD_RESET", "Netwin password reset")
EMAIL_SUBJECT_OTP = os.getenv("EMAIL_SUBJECT_OTP", "Your Netwin verification code")
SITE_DOMAIN = os.getenv("SITE_DOMAIN", "http://localhost:5173")
OTP_TTL_SECONDS = int(os.getenv("OTP_TTL_SECONDS", "300"))

# OAuth
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "")

# Object storage
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
FILES_BASE_URL = os.getenv("FILES_BASE_URL", "/files")
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))

# Background jobs; 0 disables the status refresh job
STATUS_REFRESH_SECONDS = int(os.getenv("STATUS_REFRESH_SECONDS", "60"))

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
