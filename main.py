import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from app.config import ANALYSIS_ENABLED, CORS_ORIGINS, GEMINI_MODEL
from app.database import engine, ping_database
from app.routers import analysis, auth, chat, reports, users

logging.basicConfig(format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", level=logging.INFO)
logger = logging.getLogger(__name__)


# --- Lifespan ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting Financial Advisor API (model={GEMINI_MODEL}, analysis={'on' if ANALYSIS_ENABLED else 'off'})")

    yield

    logger.info("Shutting down, disposing database engine...")
    await engine.dispose()


# --- FastAPI Initialization ---
app = FastAPI(title="Financial Advisor API", lifespan=lifespan)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- API Routers ---
app.include_router(auth.router, prefix="/api")
app.include_router(chat.router, prefix="/api")
app.include_router(analysis.router, prefix="/api")
app.include_router(reports.router, prefix="/api")
app.include_router(users.router, prefix="/api")


# --- Probes ---
@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/ready")
async def ready():
    try:
        await ping_database()
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Readiness check failed: {e}")
        raise HTTPException(status_code=503, detail="Database unavailable")
    return {"status": "ready"}
