import logging
import os
import sys
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

SESSION_SECRET = os.getenv("SESSION_SECRET")
SESSION_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS", "28800"))

# When disabled, chat context is always built straight from the store
ANALYSIS_ENABLED = os.getenv("ANALYSIS_ENABLED", "true").lower() in ("1", "true", "yes")
RESPONSE_LANGUAGE = os.getenv("RESPONSE_LANGUAGE", "Mexican Spanish")

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]

DATABASE_URL = os.getenv("DATABASE_URL")
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "5"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "10"))

if not DATABASE_URL:
    logger.critical("DATABASE_URL is missing!")
    sys.exit(1)

# Ensure async driver usage for SQLAlchemy compatibility
if DATABASE_URL.startswith("postgresql://"):
    DATABASE_URL = DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://", 1)

if not GOOGLE_API_KEY:
    logger.warning("GOOGLE_API_KEY is missing. Chat responses will be unavailable.")

if not SESSION_SECRET:
    logger.warning("SESSION_SECRET is missing. Login and authenticated endpoints will fail.")
